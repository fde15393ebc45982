import os
import subprocess
from pathlib import Path

import pytest

from muslcross.environment import add_env_common, prepare_environment


def test_linux_installs_failing_jdk_stubs(tmp_path: Path):
    base_env = {"PATH": "/usr/bin:/bin"}

    patch = prepare_environment("linux64", tmp_path, base_env)

    stub_dir = tmp_path / "fakejdk" / "bin"
    assert patch.make == "make"
    assert patch.env["PATH"] == "%s:/usr/bin:/bin" % stub_dir

    for name in ("java", "javac"):
        stub = stub_dir / name
        assert os.access(stub, os.X_OK)
        assert subprocess.run([str(stub), "-version"]).returncode == 1


def test_linux_stub_shadows_real_java(tmp_path: Path):
    patch = prepare_environment("linux64", tmp_path, {"PATH": "/usr/bin:/bin"})

    res = subprocess.run(
        ["sh", "-c", "command -v javac"],
        env=patch.env,
        capture_output=True,
        encoding="utf-8",
    )

    assert res.stdout.strip() == str(tmp_path / "fakejdk" / "bin" / "javac")


def test_environment_is_not_mutated(tmp_path: Path):
    base_env = {"PATH": "/usr/bin:/bin"}
    path_before = os.environ.get("PATH")

    patch = prepare_environment("linux64", tmp_path, base_env)

    assert base_env == {"PATH": "/usr/bin:/bin"}
    assert os.environ.get("PATH") == path_before
    assert patch.env is not base_env


def test_linux_make_override(tmp_path: Path):
    patch = prepare_environment(
        "linux64", tmp_path, {"PATH": "/bin", "GNU_MAKE": "/opt/make/bin/make"}
    )

    assert patch.make == "/opt/make/bin/make"


def test_macos_prepends_gnu_sed(tmp_path: Path):
    gnubin = tmp_path / "gnu-sed" / "libexec" / "gnubin"
    gnubin.mkdir(parents=True)

    patch = prepare_environment(
        "macos",
        tmp_path,
        {
            "PATH": "/usr/bin:/bin",
            "GNU_SED_GNUBIN": str(gnubin),
            "GNU_MAKE": "/opt/homebrew/bin/gmake",
        },
    )

    assert patch.env["PATH"] == "%s:/usr/bin:/bin" % gnubin
    assert patch.make == "/opt/homebrew/bin/gmake"
    assert not (tmp_path / "fakejdk").exists()


def test_macos_missing_gnu_sed(tmp_path: Path):
    with pytest.raises(Exception) as excinfo:
        prepare_environment(
            "macos",
            tmp_path,
            {"PATH": "/bin", "GNU_SED_GNUBIN": str(tmp_path / "missing")},
        )

    assert "GNU sed" in str(excinfo.value)


def test_unknown_platform(tmp_path: Path):
    with pytest.raises(Exception) as excinfo:
        prepare_environment("windows", tmp_path, {"PATH": ""})

    assert "unhandled host platform" in str(excinfo.value)


def test_add_env_common_reads_env_file(tmp_path: Path):
    env_file = tmp_path / "env"
    env_file.write_text("# comment\n\nCC=clang\nCFLAGS=-O2 -g\n")
    env = {}

    add_env_common(env, env_path=str(env_file))

    assert env["CC"] == "clang"
    assert env["CFLAGS"] == "-O2 -g"
    assert int(env["NUM_CPUS"]) >= 1


def test_add_env_common_without_env_file(tmp_path: Path):
    env = {}

    add_env_common(env, env_path=str(tmp_path / "missing"))

    assert "CC" not in env

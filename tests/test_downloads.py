import hashlib
from pathlib import Path

import pytest

from muslcross import utils
from muslcross.downloads import CORE_RESOURCES, DOWNLOADS, SUPPORT_LIBRARIES
from muslcross.utils import (
    IntegrityError,
    Resource,
    download_resource,
    fetch_resources,
    required_resources,
    resolve_entry,
)


def _resource(source: Path, payload: bytes, name="payload") -> Resource:
    return Resource(
        name=name,
        url=source.as_uri(),
        version="1.0",
        sha256=hashlib.sha256(payload).hexdigest(),
        size=None,
        local_name="%s.tar.gz" % name,
    )


@pytest.mark.parametrize("name", sorted(DOWNLOADS))
def test_every_download_resolves(name):
    resource = resolve_entry(name)

    assert "{" not in resource.url
    assert "{" not in resource.local_name
    assert len(resource.sha256) == 64
    assert resource.local_name


def test_linux_url_uses_major_version_directory():
    resource = resolve_entry("linux")

    assert resource.url == (
        "https://cdn.kernel.org/pub/linux/kernel/v6.x/linux-6.1.31.tar.xz"
    )
    assert resource.local_name == "linux-6.1.31.tar.xz"


def test_local_name_overrides_url_basename():
    assert resolve_entry("config.sub").local_name == "config.sub"
    assert resolve_entry("musl-cross-make").local_name == (
        "musl-cross-make-d1993a6.tar.gz"
    )


def test_unknown_download_raises_key_error():
    with pytest.raises(KeyError):
        resolve_entry("llvm")


def test_required_resources_skip_support_libraries_with_host_prefix():
    assert required_resources() == list(CORE_RESOURCES) + list(SUPPORT_LIBRARIES)
    assert required_resources("/opt/homebrew") == list(CORE_RESOURCES)


def test_download_verifies_content(tmp_path: Path):
    source = tmp_path / "source.tar.gz"
    payload = b"toolchain source"
    source.write_bytes(payload)

    path = download_resource(_resource(source, payload), tmp_path / "downloads")

    assert path == tmp_path / "downloads" / "payload.tar.gz"
    assert path.read_bytes() == payload


def test_download_rejects_altered_bytes(tmp_path: Path):
    source = tmp_path / "source.tar.gz"
    resource = _resource(source, b"original")
    source.write_bytes(b"tampered")

    with pytest.raises(IntegrityError) as excinfo:
        download_resource(resource, tmp_path / "downloads")

    assert "integrity mismatch" in str(excinfo.value)
    assert list((tmp_path / "downloads").iterdir()) == []


def test_download_rejects_wrong_size(tmp_path: Path):
    source = tmp_path / "source.tar.gz"
    payload = b"sized"
    source.write_bytes(payload)
    resource = _resource(source, payload)._replace(size=len(payload) + 1)

    with pytest.raises(IntegrityError):
        download_resource(resource, tmp_path / "downloads")


def test_verified_cache_is_reused(tmp_path: Path):
    source = tmp_path / "source.tar.gz"
    payload = b"cached"
    source.write_bytes(payload)
    resource = _resource(source, payload)

    first = download_resource(resource, tmp_path / "downloads")
    source.unlink()
    second = download_resource(resource, tmp_path / "downloads")

    assert first == second
    assert second.read_bytes() == payload


def test_corrupt_cache_is_replaced(tmp_path: Path):
    source = tmp_path / "source.tar.gz"
    payload = b"fresh"
    source.write_bytes(payload)
    resource = _resource(source, payload)

    dest = tmp_path / "downloads"
    dest.mkdir()
    (dest / resource.local_name).write_bytes(b"stale")

    path = download_resource(resource, dest)

    assert path.read_bytes() == payload


@pytest.mark.parametrize("serial", [False, True])
def test_fetch_resources(tmp_path: Path, monkeypatch, serial):
    names = []
    for name in ("alpha", "beta", "gamma"):
        payload = name.encode("ascii") * 10
        source = tmp_path / ("%s-1.0.tar.gz" % name)
        source.write_bytes(payload)
        monkeypatch.setitem(
            utils.DOWNLOADS,
            name,
            {
                "url": source.parent.as_uri() + "/%s-{version}.tar.gz" % name,
                "sha256": hashlib.sha256(payload).hexdigest(),
                "version": "1.0",
            },
        )
        names.append(name)

    paths = fetch_resources(names, tmp_path / "downloads", serial=serial)

    assert list(paths) == names
    for name, path in paths.items():
        assert path.name == "%s-1.0.tar.gz" % name
        assert path.read_bytes() == name.encode("ascii") * 10


def test_fetch_resources_raises_integrity_error(tmp_path: Path, monkeypatch):
    source = tmp_path / "bad-1.0.tar.gz"
    source.write_bytes(b"payload")
    monkeypatch.setitem(
        utils.DOWNLOADS,
        "bad",
        {"url": source.as_uri(), "sha256": "0" * 64, "version": "1.0"},
    )

    with pytest.raises(IntegrityError):
        fetch_resources(["bad"], tmp_path / "downloads")

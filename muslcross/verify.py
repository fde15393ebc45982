# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

"""Smoke tests for installed toolchains.

Each toolchain compiles a C and a C++ program, and the program is then fed to
the triple prefixed binutils. Failures are collected per target rather than
raised, so one broken toolchain does not hide the state of the others.
"""

import contextlib
import pathlib
import subprocess

from .logging import log, log_to_file

HELLO_C = """\
#include <stdio.h>
int main(void) {
    puts("Hello World!");
    return 0;
}
"""

HELLO_CPP = """\
#include <iostream>
int main(void) {
    std::cout << "Hello World!" << std::endl;
    return 0;
}
"""

# (language, compiler driver, source file, source, output program)
PROGRAMS = (
    ("c", "cc", "hello.c", HELLO_C, "hello-c"),
    ("c++", "c++", "hello.cpp", HELLO_CPP, "hello-cxx"),
)

# strip rewrites the program, so it runs last.
INSPECTION_TOOLS = (
    ("readelf", ["-a"]),
    ("objdump", ["-ldSC"]),
    ("strings", []),
    ("size", []),
    ("nm", []),
    ("strip", []),
)

# Toolchains must not depend on anything from the calling environment.
VERIFY_ENV = {"PATH": "/usr/bin:/bin"}


class VerificationError(Exception):
    """Represents a failed smoke test step for a target."""

    def __init__(self, triple, step, message):
        super().__init__("%s: %s: %s" % (triple, step, message))
        self.triple = triple
        self.step = step


class TargetVerification(object):
    def __init__(self, triple):
        self.triple = triple
        self.steps = []
        self.errors = []

    @property
    def ok(self):
        return not self.errors

    def run(self, step, args, cwd):
        """Run a verification step, recording a failure instead of raising."""
        self.steps.append(step)
        log("%s: %s" % (step, " ".join(str(a) for a in args)))

        try:
            res = subprocess.run(
                args,
                cwd=cwd,
                env=VERIFY_ENV,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
            )
        except OSError as e:
            self.errors.append(VerificationError(self.triple, step, str(e)))
            return False

        for line in res.stdout.splitlines():
            log(line)

        if res.returncode:
            self.errors.append(
                VerificationError(
                    self.triple, step, "exited with code %d" % res.returncode
                )
            )
            return False

        return True


class VerificationReport(object):
    def __init__(self):
        self.results = {}

    def add(self, result: TargetVerification):
        self.results[result.triple] = result

    @property
    def ok(self):
        return all(r.ok for r in self.results.values())

    @property
    def failed(self):
        return [triple for triple, r in self.results.items() if not r.ok]

    @property
    def errors(self):
        return [e for r in self.results.values() for e in r.errors]

    def summary(self):
        lines = []
        for triple, result in self.results.items():
            if result.ok:
                lines.append("%s: ok (%d steps)" % (triple, len(result.steps)))
            else:
                lines.append("%s: FAILED" % triple)
                lines.extend("    %s" % e for e in result.errors)

        return lines


def verify_install(install, work_dir: pathlib.Path) -> TargetVerification:
    """Compile and inspect test programs with one installed toolchain."""
    result = TargetVerification(install.triple)

    target_dir = work_dir / install.triple
    target_dir.mkdir(parents=True, exist_ok=True)

    for language, driver, source_name, source, program_name in PROGRAMS:
        (target_dir / source_name).write_text(source)

        program = target_dir / program_name
        program.unlink(missing_ok=True)

        step = "%s compile" % language
        args = [install.tool(driver), "-O2", source_name, "-o", program_name]
        if not result.run(step, args, target_dir):
            continue

        if not program.exists():
            result.errors.append(
                VerificationError(
                    install.triple, step, "%s was not produced" % program_name
                )
            )
            continue

        for tool, options in INSPECTION_TOOLS:
            result.run(
                "%s %s" % (language, tool),
                [install.tool(tool), *options, program_name],
                target_dir,
            )

    return result


def verify_toolchains(installs, work_dir: pathlib.Path, log_dir=None):
    """Verify every install, continuing past failing targets."""
    report = VerificationReport()

    for install in installs:
        if log_dir:
            log_dir.mkdir(parents=True, exist_ok=True)
            log_path = log_dir / ("verify.%s.log" % install.triple)
            cm = log_to_file(install.triple, log_path)
        else:
            cm = contextlib.nullcontext()

        with cm:
            result = verify_install(install, work_dir)

        if result.ok:
            log("verified %s" % install.triple)
        else:
            log("verification of %s failed" % install.triple)

        report.add(result)

    return report

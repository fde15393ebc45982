# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

import concurrent.futures
import gzip
import hashlib
import os
import pathlib
import subprocess
import tarfile
import typing
import urllib.request

import zstandard
from packaging.version import Version

from .downloads import CORE_RESOURCES, DOWNLOADS, SUPPORT_LIBRARIES
from .logging import log


class Resource(typing.NamedTuple):
    name: str
    url: str
    version: str
    sha256: str
    size: typing.Optional[int]
    local_name: str


class IntegrityError(Exception):
    """Represents an integrity error when downloading a URL."""


def hash_path(p: pathlib.Path):
    h = hashlib.sha256()

    with p.open("rb") as fh:
        while True:
            chunk = fh.read(65536)
            if not chunk:
                break

            h.update(chunk)

    return h.hexdigest()


def write_if_different(p: pathlib.Path, data: bytes):
    """Write a file if it is missing or its content is different."""
    if p.exists():
        with p.open("rb") as fh:
            existing = fh.read()
        write = existing != data
    else:
        write = True

    if write:
        with p.open("wb") as fh:
            fh.write(data)

    return write


def resolve_entry(key: str) -> Resource:
    """Obtain fetch metadata for a named ``DOWNLOADS`` entry."""
    entry = DOWNLOADS[key]
    version = entry["version"]

    fields = {"version": version}
    if "{version_major}" in entry["url"]:
        fields["version_major"] = Version(version).major

    url = entry["url"].format(**fields)
    local_name = entry.get("local_name", url[url.rindex("/") + 1 :]).format(**fields)

    assert isinstance(entry["sha256"], str)

    return Resource(
        name=key,
        url=url,
        version=version,
        sha256=entry["sha256"],
        size=entry.get("size"),
        local_name=local_name,
    )


def required_resources(host_lib_prefix=None):
    """Names of the downloads a toolchain build needs."""
    names = list(CORE_RESOURCES)

    if not host_lib_prefix:
        names.extend(SUPPORT_LIBRARIES)

    return names


def secure_download_stream(url, size, sha256):
    """Securely download a URL to a stream of chunks.

    If the integrity of the download fails, an IntegrityError is
    raised.
    """
    h = hashlib.sha256()
    length = 0

    with urllib.request.urlopen(url) as fh:
        if not url.endswith(".gz") and fh.info().get("Content-Encoding") == "gzip":
            fh = gzip.GzipFile(fileobj=fh)

        while True:
            chunk = fh.read(65536)
            if not chunk:
                break

            h.update(chunk)
            length += len(chunk)

            yield chunk

    digest = h.hexdigest()

    if (size is not None and length != size) or digest != sha256:
        raise IntegrityError(
            "integrity mismatch on %s: wanted size=%s, sha256=%s; got size=%d, sha256=%s"
            % (url, size, sha256, length, digest)
        )


def verify_path(path: pathlib.Path, size, sha256):
    if size is not None and path.stat().st_size != size:
        log("existing file size is wrong; removing")
        return False

    if hash_path(path) != sha256:
        log("existing file hash is wrong; removing")
        return False

    return True


def download_to_path(url: str, path: pathlib.Path, size, sha256: str):
    """Download a URL to a filesystem path, verifying its content.

    A verified existing file is reused as is. Failures are not retried.
    """
    if path.exists():
        if verify_path(path, size, sha256):
            log("%s exists and passes integrity checks" % path)
            return

        path.unlink()

    # Download to a temporary file and rename at the end so the final file
    # is never partially written or contains bad data.
    log("downloading %s to %s" % (url, path))
    tmp = path.with_name("%s.tmp" % path.name)

    try:
        with tmp.open("wb") as fh:
            for chunk in secure_download_stream(url, size, sha256):
                fh.write(chunk)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise

    tmp.rename(path)
    log("successfully downloaded %s" % url)


def download_resource(resource: Resource, dest_path: pathlib.Path) -> pathlib.Path:
    dest_path.mkdir(parents=True, exist_ok=True)

    local_path = dest_path / resource.local_name
    download_to_path(resource.url, local_path, resource.size, resource.sha256)

    return local_path


def fetch_resources(names, dest_path: pathlib.Path, serial=False):
    """Fetch named downloads into ``dest_path``.

    Returns a dict of name to local path. Fetches run concurrently unless
    ``serial`` is set. The first failure is raised once in-flight fetches
    finish.
    """
    resources = [resolve_entry(name) for name in names]

    if serial:
        return {r.name: download_resource(r, dest_path) for r in resources}

    paths = {}

    with concurrent.futures.ThreadPoolExecutor(
        max_workers=max(1, min(len(resources), 8))
    ) as e:
        fs = {e.submit(download_resource, r, dest_path): r for r in resources}

        for f in concurrent.futures.as_completed(fs):
            paths[fs[f].name] = f.result()

    return {name: paths[name] for name in names}


# 2024-01-01T00:00:00Z
DEFAULT_MTIME = 1704067200


def create_tar_from_directory(fh, base_path: pathlib.Path, path_prefix=None):
    """Write a deterministic tar archive of a directory tree."""

    def normalize(ti):
        ti.mtime = DEFAULT_MTIME
        ti.uid = 0
        ti.uname = "root"
        ti.gid = 0
        ti.gname = "root"
        return ti

    # Directory symlinks appear in ``dirs`` and are archived as links.
    entries = []
    for root, dirs, files in os.walk(base_path):
        for name in dirs + files:
            full = pathlib.Path(root) / name
            entries.append((str(full.relative_to(base_path)), full))

    entries.sort()

    with tarfile.open(name="", mode="w|", fileobj=fh) as tf:
        for rel, full in entries:
            if path_prefix:
                rel = str(pathlib.Path(path_prefix) / rel)
            tf.add(full, rel, recursive=False, filter=normalize)


def extract_tar_to_directory(source: pathlib.Path, dest: pathlib.Path):
    with tarfile.open(source, "r") as tf:
        if hasattr(tarfile, "data_filter"):
            tf.extractall(dest, filter="data")
        else:
            tf.extractall(dest)


def compress_toolchain_archive(
    source_dir: pathlib.Path, dist_path: pathlib.Path, basename: str
):
    """Write a zstd compressed tar archive of an installed toolchain tree."""
    dist_path.mkdir(parents=True, exist_ok=True)

    dest_path = dist_path / ("%s.tar.zst" % basename)
    temp_path = dist_path / ("%s.tar.zst.tmp" % basename)

    log("compressing toolchain archive to %s" % dest_path)

    try:
        with temp_path.open("wb") as ofh:
            cctx = zstandard.ZstdCompressor(level=19)
            with cctx.stream_writer(ofh, closefd=False) as writer:
                create_tar_from_directory(writer, source_dir, path_prefix=basename)

        temp_path.rename(dest_path)
    finally:
        temp_path.unlink(missing_ok=True)

    log("%s has SHA256 %s" % (dest_path, hash_path(dest_path)))

    return dest_path


def exec_and_log(args, cwd, env):
    """Run a process, logging its combined output line by line.

    Returns the exit code.
    """
    p = subprocess.Popen(
        args,
        cwd=cwd,
        env=env,
        bufsize=1,
        stdout=subprocess.PIPE,
        stderr=subprocess.STDOUT,
    )

    for line in iter(p.stdout.readline, b""):
        log(line.rstrip())

    p.wait()

    if p.returncode:
        if env and "MUSLCROSS_BREAK_ON_FAILURE" in env:
            import pdb

            pdb.set_trace()

        log("process exited %d" % p.returncode)

    return p.returncode

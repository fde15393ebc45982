# This Source Code Form is subject to the terms of the Mozilla Public
# License, v. 2.0. If a copy of the MPL was not distributed with this
# file, You can obtain one at https://mozilla.org/MPL/2.0/.

# URLs may reference ``{version}`` and ``{version_major}``. ``local_name`` is
# the file name musl-cross-make looks for in its SOURCES directory; when absent
# the last path component of the URL is used.
DOWNLOADS = {
    # The build tool itself. This fork carries the hashes and patches for the
    # component versions pinned below.
    "musl-cross-make": {
        "url": "https://github.com/jthat/musl-cross-make/archive/{version}.tar.gz",
        "sha256": "12256deee0f9ad50eb7ffa81af22c252f4953c1423e9011fe3acdb025a0ce43d",
        "version": "d1993a6",
        "local_name": "musl-cross-make-{version}.tar.gz",
    },
    "binutils": {
        "url": "https://ftp.gnu.org/gnu/binutils/binutils-{version}.tar.xz",
        "sha256": "0f8a4c272d7f17f369ded10a4aca28b8e304828e95526da482b0ccc4dfc9d8e1",
        "version": "2.40",
    },
    "config.sub": {
        "url": "https://git.savannah.gnu.org/gitweb/?p=config.git;a=blob_plain;f=config.sub;hb={version}",
        "sha256": "b45ba96fa578cfca60ed16e27e689f10812c3f946535e779229afe7a840763e6",
        "version": "63acb96f9247",
        "local_name": "config.sub",
    },
    "gcc": {
        "url": "https://ftp.gnu.org/gnu/gcc/gcc-{version}/gcc-{version}.tar.xz",
        "sha256": "61d684f0aa5e76ac6585ad8898a2427aade8979ed5e7f85492286c4dfc13ee86",
        "version": "13.1.0",
    },
    "gmp": {
        "url": "https://ftp.gnu.org/gnu/gmp/gmp-{version}.tar.bz2",
        "sha256": "5275bb04f4863a13516b2f39392ac5e272f5e1bb8057b18aec1c9b79d73d8fb2",
        "version": "6.1.2",
    },
    "isl": {
        "url": "https://downloads.sourceforge.net/project/libisl/isl-{version}.tar.bz2",
        "sha256": "d18ca11f8ad1a39ab6d03d3dcb3365ab416720fcb65b42d69f34f51bf0a0e859",
        "version": "0.21",
    },
    # Kernel headers. The URL directory is keyed on the major version.
    "linux": {
        "url": "https://cdn.kernel.org/pub/linux/kernel/v{version_major}.x/linux-{version}.tar.xz",
        "sha256": "e86917bba1990e967943645484182a64ba325f98b114a1906cc1d50992e073c1",
        "version": "6.1.31",
    },
    "mpc": {
        "url": "https://ftp.gnu.org/gnu/mpc/mpc-{version}.tar.gz",
        "sha256": "6985c538143c1208dcb1ac42cedad6ff52e267b47e5f970183a3e75125b43c2e",
        "version": "1.1.0",
    },
    "mpfr": {
        "url": "https://ftp.gnu.org/gnu/mpfr/mpfr-{version}.tar.bz2",
        "sha256": "c05e3f02d09e0e9019384cdd58e0f19c64e6db1fd6f5ecf77b4b1c61ca253acc",
        "version": "4.0.2",
    },
    "musl": {
        "url": "https://www.musl-libc.org/releases/musl-{version}.tar.gz",
        "sha256": "7a35eae33d5372a7c0da1188de798726f68825513b7ae3ebe97aaaa52114f039",
        "version": "1.2.4",
    },
}

# Always needed to build a toolchain.
CORE_RESOURCES = ("musl-cross-make", "linux", "gcc", "binutils", "musl", "config.sub")

# GCC support libraries. Skipped when linking against an existing prefix.
SUPPORT_LIBRARIES = ("gmp", "mpfr", "mpc", "isl")

"""
Shared fixtures for IPA Builder tests.

Archive builders write small zipped .app bundles shaped like real build
outputs: an Info.plist marker, a Mach-O main executable, and resources.
"""

import zipfile
from pathlib import Path
from typing import Dict

import pytest

# 64-bit little-endian Mach-O header magic as it appears on disk
MACHO_HEADER = b"\xcf\xfa\xed\xfe" + b"\x00" * 28
INFO_PLIST = b'<?xml version="1.0" encoding="UTF-8"?>\n<plist version="1.0"><dict/></plist>\n'


def bundle_files(bundle: str = "Runner.app") -> Dict[str, bytes]:
    """Member name -> content for a minimal app bundle."""
    return {
        f"{bundle}/Info.plist": INFO_PLIST,
        f"{bundle}/Runner": MACHO_HEADER,
        f"{bundle}/Frameworks/libswiftCore.dylib": b"not really a dylib",
        f"{bundle}/Assets.car": b"assets",
    }


def write_zip(path: Path, files: Dict[str, bytes]) -> Path:
    """Write a zip archive with the given members. Parent dirs are implicit."""
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return path


@pytest.fixture
def app_zip(tmp_path: Path) -> Path:
    """Runner.app at the archive root."""
    return write_zip(tmp_path / "Runner.app.zip", bundle_files())


@pytest.fixture
def nested_app_zip(tmp_path: Path) -> Path:
    """MyProject.app one folder down."""
    files = {f"SomeFolder/{name}": data for name, data in bundle_files("MyProject.app").items()}
    return write_zip(tmp_path / "nested.zip", files)


@pytest.fixture
def empty_zip(tmp_path: Path) -> Path:
    return write_zip(tmp_path / "empty.zip", {})


@pytest.fixture
def no_bundle_zip(tmp_path: Path) -> Path:
    return write_zip(tmp_path / "nobundle.zip", {"readme.txt": b"hello"})


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    out = tmp_path / "out"
    out.mkdir()
    return out

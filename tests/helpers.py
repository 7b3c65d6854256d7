"""Builders for manifests and release archives used across the tests."""

import hashlib
import json
import zipfile
from pathlib import Path

import py7zr

THRIVE_SCRIPT = "#!/bin/sh\necho \"Thrive $1\"\necho \"missing shader\" >&2\nexit 0\n"

PLATFORMS = {
    "1": {"os": "linux"},
    "2": {"os": "windows", "arch": "x86_64"},
    "3": {"os": "macos"},
}


def sha3(data: bytes) -> str:
    return hashlib.sha3_256(data).hexdigest()


def make_zip(path: Path, files: dict[str, str | bytes]) -> Path:
    """Writes a zip archive holding ``files`` (archive name -> content)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in files.items():
            archive.writestr(name, content)
    return path


def make_7z(path: Path, files: dict[str, str | bytes], workdir: Path) -> Path:
    """Writes a 7z archive holding ``files``, built from a scratch folder."""
    source = workdir / f"{path.stem}-source"
    for name, content in files.items():
        target = source / name
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, str):
            content = content.encode("utf-8")
        target.write_bytes(content)
    path.parent.mkdir(parents=True, exist_ok=True)
    with py7zr.SevenZipFile(path, "w") as archive:
        for name in files:
            archive.write(source / name, arcname=name)
    return path


def download_entry(
    platform_id: str,
    file_name: str,
    content: bytes = b"",
    *,
    folder_name: str | None = None,
    url: str | None = None,
    digest: str | None = None,
) -> dict:
    return {
        "os": platform_id,
        "url": url or f"https://example.com/releases/{file_name}",
        "fileName": file_name,
        "hash": digest or sha3(content),
        "folderName": folder_name or Path(file_name).stem,
    }


def version_entry(version_id: str, release_num: str, stable: bool, downloads: list) -> dict:
    return {
        "id": version_id,
        "releaseNum": release_num,
        "stable": stable,
        "downloads": downloads,
    }


def manifest_text(versions: list[dict], platforms: dict | None = None) -> str:
    return json.dumps({"platforms": platforms or PLATFORMS, "versions": versions})


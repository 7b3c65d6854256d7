import json

import pytest
from pydantic import ValidationError

from helpers import download_entry, manifest_text, version_entry
from thrive_launcher.exceptions import (
    MalformedCatalogError,
    NoDownloadForPlatformError,
    NoStableVersionError,
    UnknownVersionError,
)
from thrive_launcher.models.catalog import VersionCatalog, parse_manifest
from thrive_launcher.utils.platform import OperatingSystem, Platform
from thrive_launcher.utils.versioning import release_sort_key

LINUX = Platform(os="linux", arch="x86_64")
WINDOWS = Platform(os="win32", arch="AMD64")


def _sample_manifest() -> str:
    return manifest_text(
        [
            version_entry(
                "1",
                "0.5.0",
                True,
                [
                    download_entry("1", "thrive_0.5.0_linux.7z", b"a"),
                    download_entry("2", "thrive_0.5.0_windows.7z", b"b"),
                ],
            ),
            version_entry(
                "2",
                "0.6.1",
                True,
                [download_entry("1", "thrive_0.6.1_linux.7z", b"c")],
            ),
            version_entry(
                "3",
                "0.7.0-rc1",
                False,
                [download_entry("1", "thrive_0.7.0_linux.7z", b"d")],
            ),
        ]
    )


def test_recommended_is_newest_stable_version():
    catalog = VersionCatalog.from_manifest(_sample_manifest())

    assert catalog.recommended().release_num == "0.6.1"


def test_versions_are_listed_newest_first():
    catalog = VersionCatalog.from_manifest(_sample_manifest())

    assert [v.release_num for v in catalog.versions] == ["0.7.0-rc1", "0.6.1", "0.5.0"]


def test_recommended_without_stable_version_fails():
    text = manifest_text(
        [version_entry("1", "0.1.0", False, [download_entry("1", "thrive.7z", b"x")])]
    )

    with pytest.raises(NoStableVersionError):
        VersionCatalog.from_manifest(text).recommended()


def test_download_for_returns_the_listed_record():
    catalog = VersionCatalog.from_manifest(_sample_manifest())
    version = catalog.get("1")

    download = catalog.download_for(version, WINDOWS)

    assert download.file_name == "thrive_0.5.0_windows.7z"
    assert download.folder_name == "thrive_0.5.0_windows"
    assert download.platform.os == OperatingSystem.WINDOWS
    assert download.version_id == "1"


def test_download_for_missing_platform_fails():
    catalog = VersionCatalog.from_manifest(_sample_manifest())

    with pytest.raises(NoDownloadForPlatformError):
        catalog.download_for(catalog.get("2"), WINDOWS)


def test_download_for_does_not_substitute_architecture():
    catalog = VersionCatalog.from_manifest(_sample_manifest())

    with pytest.raises(NoDownloadForPlatformError):
        catalog.download_for(catalog.get("1"), Platform(os="windows", arch="arm64"))


def test_download_without_architecture_matches_any_arch():
    catalog = VersionCatalog.from_manifest(_sample_manifest())

    download = catalog.download_for(catalog.get("2"), LINUX)

    assert download.file_name == "thrive_0.6.1_linux.7z"


def test_valid_versions_filters_by_platform():
    catalog = VersionCatalog.from_manifest(_sample_manifest())

    assert [v.id for v in catalog.valid_versions(WINDOWS)] == ["1"]
    assert len(catalog.valid_versions(LINUX)) == 3
    assert catalog.valid_versions(Platform(os="darwin")) == []


def test_unknown_version_id_fails():
    catalog = VersionCatalog.from_manifest(_sample_manifest())

    with pytest.raises(UnknownVersionError):
        catalog.get("42")


def test_parsed_versions_are_immutable():
    versions = parse_manifest(_sample_manifest())
    version = next(iter(versions))

    with pytest.raises(ValidationError):
        version.stable = not version.stable


def test_numeric_ids_are_accepted():
    text = json.dumps(
        {
            "platforms": {"1": {"os": "linux"}},
            "versions": [
                {
                    "id": 7,
                    "releaseNum": "0.6.1",
                    "stable": True,
                    "downloads": [download_entry("1", "thrive.7z", b"x") | {"os": 1}],
                }
            ],
        }
    )

    catalog = VersionCatalog.from_manifest(text)

    assert catalog.get("7").release_num == "0.6.1"


@pytest.mark.parametrize(
    "document",
    [
        "not json at all",
        json.dumps({"versions": []}),
        json.dumps({"platforms": {}, "versions": [{"id": "1"}]}),
    ],
)
def test_malformed_manifest_is_reported(document):
    with pytest.raises(MalformedCatalogError):
        parse_manifest(document)


def test_duplicate_version_ids_are_rejected():
    text = manifest_text(
        [version_entry("1", "0.1.0", True, []), version_entry("1", "0.2.0", True, [])]
    )

    with pytest.raises(MalformedCatalogError, match="more than once"):
        parse_manifest(text)


def test_unknown_platform_reference_is_rejected():
    text = manifest_text(
        [version_entry("1", "0.1.0", True, [download_entry("9", "thrive.7z", b"x")])]
    )

    with pytest.raises(MalformedCatalogError, match="unknown platform"):
        parse_manifest(text)


@pytest.mark.parametrize("file_name", ["../escape.7z", "nested/thrive.7z", ".."])
def test_names_escaping_the_staging_folder_are_rejected(file_name):
    entry = download_entry("1", "thrive.7z", b"x") | {"fileName": file_name}
    text = manifest_text([version_entry("1", "0.1.0", True, [entry])])

    with pytest.raises(MalformedCatalogError):
        parse_manifest(text)


def test_invalid_hash_is_rejected():
    entry = download_entry("1", "thrive.7z", digest="abc123")
    text = manifest_text([version_entry("1", "0.1.0", True, [entry])])

    with pytest.raises(MalformedCatalogError):
        parse_manifest(text)


def test_release_labels_order_numerically():
    labels = ["0.10.0", "0.9.2", "0.6.1", "1.0.0-rc1", "0.6.0"]

    ordered = sorted(labels, key=release_sort_key, reverse=True)

    assert ordered == ["1.0.0-rc1", "0.10.0", "0.9.2", "0.6.1", "0.6.0"]


def test_unparseable_labels_sort_below_versions():
    assert release_sort_key("nightly 12") < release_sort_key("0.0.1")
    assert release_sort_key("build 3") < release_sort_key("build 12")


def test_platform_aliases_are_normalized():
    assert Platform(os="Win32", arch="AMD64") == Platform(os="windows", arch="x86_64")
    assert Platform(os="darwin").os == OperatingSystem.MACOS
    assert str(Platform(os="linux", arch="aarch64")) == "linux-arm64"

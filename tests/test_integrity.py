import asyncio
from pathlib import Path

from helpers import sha3
from thrive_launcher.release.integrity import IntegrityVerifier


def _write(path: Path, data: bytes) -> Path:
    path.write_bytes(data)
    return path


def test_verify_is_deterministic(tmp_path: Path):
    data = b"thrive release" * 10000
    archive = _write(tmp_path / "thrive.7z", data)

    results = [IntegrityVerifier.verify(archive, sha3(data)) for _ in range(3)]

    assert results == [True, True, True]


def test_single_flipped_byte_fails_verification(tmp_path: Path):
    data = bytearray(b"\x00" * 4096)
    expected = sha3(bytes(data))
    data[2048] ^= 0x01
    archive = _write(tmp_path / "thrive.7z", bytes(data))

    assert IntegrityVerifier.verify(archive, expected) is False


def test_hash_comparison_ignores_case(tmp_path: Path):
    data = b"case"
    archive = _write(tmp_path / "thrive.7z", data)

    assert IntegrityVerifier.verify(archive, sha3(data).upper())


def test_hash_comparison_is_exact_apart_from_case(tmp_path: Path):
    data = b"case"
    archive = _write(tmp_path / "thrive.7z", data)

    assert IntegrityVerifier.verify(archive, f" {sha3(data)}\n") is False


def test_progress_is_reported_up_to_complete(tmp_path: Path):
    archive = _write(tmp_path / "thrive.7z", b"x" * 10000)
    percentages: list[float] = []

    IntegrityVerifier.compute_hash(archive, percentages.append, chunk_size=1000)

    assert len(percentages) == 10
    assert percentages == sorted(percentages)
    assert percentages[-1] == 100.0


def test_empty_file_reports_complete(tmp_path: Path):
    archive = _write(tmp_path / "empty.7z", b"")
    percentages: list[float] = []

    digest = IntegrityVerifier.compute_hash(archive, percentages.append)

    assert digest == sha3(b"")
    assert percentages == [100.0]


def test_failing_progress_callback_does_not_change_result(tmp_path: Path):
    data = b"callback" * 1000
    archive = _write(tmp_path / "thrive.7z", data)

    def broken(_: float) -> None:
        raise RuntimeError("display went away")

    assert IntegrityVerifier.verify(archive, sha3(data), broken)


def test_verify_async_runs_off_loop(tmp_path: Path):
    data = b"async" * 100
    archive = _write(tmp_path / "thrive.7z", data)

    assert asyncio.run(IntegrityVerifier.verify_async(archive, sha3(data)))

import asyncio
import sys
from pathlib import Path

import pytest

from thrive_launcher.exceptions import LaunchAlreadyInProgressError, ProcessSpawnError
from thrive_launcher.launch.session import LaunchSession, OutputLog
from thrive_launcher.models.events import OutputLine, StreamTag

PYTHON = Path(sys.executable)


def _run_script(code: str, **kwargs) -> LaunchSession:
    async def _main() -> LaunchSession:
        session = LaunchSession(PYTHON, arguments=["-c", code], **kwargs)
        await session.start()
        await session.wait()
        return session

    return asyncio.run(_main())


def test_first_line_marks_process_start():
    session = _run_script("print('hello')")

    assert session.log.texts()[0] == LaunchSession.PROCESS_STARTED
    assert "hello" in session.log.texts()


def test_stderr_lines_are_prefixed():
    session = _run_script("import sys; print('bad shader', file=sys.stderr)")

    stderr = [line for line in session.log if line.stream == StreamTag.STDERR]
    assert [line.text for line in stderr] == ["ERROR: bad shader"]


def test_normal_exit_is_logged():
    session = _run_script("pass")

    assert session.exit_code == 0
    assert not session.running
    assert session.log.texts()[-1] == f"{PYTHON.name} has exited normally."


def test_error_exit_code_is_recorded():
    session = _run_script("raise SystemExit(3)")

    assert session.exit_code == 3
    assert session.log.texts()[-1] == f"{PYTHON.name} exited with error code 3."


def test_log_keeps_only_newest_lines():
    session = _run_script("for i in range(50): print(i)", max_lines=10)

    texts = session.log.texts()
    assert len(texts) == 10
    assert texts[-2] == "49"
    assert LaunchSession.PROCESS_STARTED not in texts


def test_output_is_forwarded_to_listener():
    received: list[OutputLine] = []

    _run_script("print('one'); print('two')", on_output=received.append)

    assert [line.text for line in received[:3]] == [
        LaunchSession.PROCESS_STARTED,
        "one",
        "two",
    ]


def test_working_directory_defaults_to_executable_folder():
    session = LaunchSession(PYTHON)

    assert session.working_directory == PYTHON.parent
    assert session.exit_code is None
    assert session.pid is None


def test_missing_executable_fails_to_spawn(tmp_path: Path):
    session = LaunchSession(tmp_path / "bin" / "Thrive")

    with pytest.raises(ProcessSpawnError):
        asyncio.run(session.start())


def test_session_cannot_start_twice():
    async def _main():
        session = LaunchSession(PYTHON, arguments=["-c", "pass"])
        await session.start()
        try:
            with pytest.raises(LaunchAlreadyInProgressError):
                await session.start()
        finally:
            await session.wait()

    asyncio.run(_main())


def test_output_log_evicts_oldest_first():
    log = OutputLog(max_lines=2)
    for text in ("a", "b", "c"):
        log.append(OutputLine(StreamTag.STDOUT, text))

    assert log.texts() == ["b", "c"]
    assert len(log) == 2


def test_overlong_line_is_logged_without_loss():
    size = LaunchSession.STREAM_LIMIT * 2 + 10
    session = _run_script(
        f"import sys; sys.stdout.write('x' * {size} + '\\n'); print('after')"
    )

    stdout = [line.text for line in session.log if line.stream == StreamTag.STDOUT]
    pieces = stdout[: stdout.index("after")]
    assert len(pieces) > 1
    assert sum(len(piece) for piece in pieces) == size
    assert set("".join(pieces)) == {"x"}

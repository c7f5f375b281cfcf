"""Shared fakes for porty tests."""

from porty.runner import CommandResult


def ok(output: str = "") -> CommandResult:
    return CommandResult(success=True, output=output, returncode=0)


def failed(error: str = "exit status 1", returncode: int | None = 1) -> CommandResult:
    return CommandResult(success=False, output="", error=error, returncode=returncode)


def command_router(routes: dict[str, CommandResult]):
    """Fake ``run_command`` answering by substring of the joined argv.

    Routes are checked in insertion order, so list specific commands first.
    Anything unmatched fails like a missing tool.
    """
    calls: list[tuple[str, ...]] = []

    async def fake_run(*args: str, timeout: float | None = None) -> CommandResult:
        calls.append(args)
        joined = " ".join(args)
        for needle, result in routes.items():
            if needle in joined:
                return result
        return failed(f"{args[0]}: command not found", None)

    fake_run.calls = calls
    return fake_run

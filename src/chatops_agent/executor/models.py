"""Domain models shared by the planner, executor and message handler."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class TaskCommand:
    """One planned shell invocation with a human-readable description."""

    command: str
    description: str = ""

    def to_payload(self) -> dict[str, str]:
        return {"command": self.command, "description": self.description}


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Outcome of attempting one `TaskCommand`."""

    command: str
    success: bool
    exit_code: int | None
    stdout: str
    stderr: str

    @classmethod
    def from_exit_code(
        cls,
        *,
        command: str,
        exit_code: int | None,
        stdout: str,
        stderr: str,
    ) -> CommandResult:
        """Build a result whose `success` flag is derived from the exit status."""

        return cls(
            command=command,
            success=exit_code == 0,
            exit_code=exit_code,
            stdout=stdout,
            stderr=stderr,
        )

    @classmethod
    def failed(cls, *, command: str, error: str) -> CommandResult:
        """Result for a command that timed out or could not be started."""

        return cls(command=command, success=False, exit_code=None, stdout="", stderr=error)


@dataclass(frozen=True, slots=True)
class ChatAuthorizationPolicy:
    """Chats allowed to trigger execution; an empty set allows every chat."""

    allowed_chat_ids: frozenset[int] = frozenset()

    def allows(self, chat_id: int) -> bool:
        if not self.allowed_chat_ids:
            return True
        return chat_id in self.allowed_chat_ids

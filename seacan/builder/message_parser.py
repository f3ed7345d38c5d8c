from typing import Optional, Dict, Any, Iterable, Iterator, AsyncIterable, AsyncIterator, Union, Callable
from dataclasses import dataclass, field
import json

from pydantic import ValidationError

from seacan.common.dto.artifact import ExecutableArtifact, PackageId, TargetDescriptor
from seacan.common.dto.diagnostic import BuildScriptOutput
from seacan.common.config.constants import MessageReason
from seacan.common.config.logging_config import get_logger
from seacan.common.exceptions.build_exceptions import AbnormalTerminationException
from seacan.common.exceptions.discovery_exceptions import MalformedMessageException


logger = get_logger(__name__)


@dataclass(frozen=True)
class BuildEvent:
    line_number: int


@dataclass(frozen=True)
class ArtifactProduced(BuildEvent):
    artifact: ExecutableArtifact


@dataclass(frozen=True)
class CompilerMessage(BuildEvent):
    payload: Dict[str, Any]
    package_id: PackageId
    target: TargetDescriptor

    @property
    def level(self) -> str:
        return str(self.payload.get("level", ""))


@dataclass(frozen=True)
class BuildScriptExecuted(BuildEvent):
    output: BuildScriptOutput

    @property
    def text(self) -> str:
        return self.output.text


@dataclass(frozen=True)
class BuildFinished(BuildEvent):
    success: bool


@dataclass(frozen=True)
class MalformedMessage(BuildEvent):
    line: str
    error: MalformedMessageException


@dataclass
class ParserStats:
    lines_read: int = 0
    events: Dict[str, int] = field(default_factory=dict)
    malformed: int = 0

    def record(self, event: BuildEvent) -> None:
        name = type(event).__name__
        self.events[name] = self.events.get(name, 0) + 1
        if isinstance(event, MalformedMessage):
            self.malformed += 1


class MessageStreamParser:
    """Classifies Cargo's ``--message-format=json`` output, one line at a time.

    Each line is parsed on its own; a line that is not a well-formed protocol
    message becomes a :class:`MalformedMessage` event and parsing carries on
    with the next one. Iteration stops after ``build-finished``. If the input
    runs out before that, :class:`AbnormalTerminationException` is raised once
    every earlier event has been yielded.
    """

    def __init__(self):
        self._handlers: Dict[MessageReason, Callable[[Dict[str, Any], int], BuildEvent]] = {
            MessageReason.COMPILER_ARTIFACT: self._parse_artifact,
            MessageReason.COMPILER_MESSAGE: self._parse_compiler_message,
            MessageReason.BUILD_SCRIPT_EXECUTED: self._parse_build_script,
            MessageReason.BUILD_FINISHED: self._parse_build_finished,
        }
        self._stats = ParserStats()
        self._finished: Optional[BuildFinished] = None

    @property
    def finished(self) -> Optional[BuildFinished]:
        return self._finished

    @property
    def stats(self) -> ParserStats:
        return self._stats

    def parse(self, lines: Iterable[Union[str, bytes]]) -> Iterator[BuildEvent]:
        self._reset()
        for line_number, raw_line in enumerate(lines, start=1):
            event = self.parse_line(self._decode(raw_line), line_number)
            if event is None:
                continue
            yield event
            if isinstance(event, BuildFinished):
                return
        raise self._stream_closed()

    async def aparse(self, lines: AsyncIterable[Union[str, bytes]]) -> AsyncIterator[BuildEvent]:
        self._reset()
        line_number = 0
        async for raw_line in lines:
            line_number += 1
            event = self.parse_line(self._decode(raw_line), line_number)
            if event is None:
                continue
            yield event
            if isinstance(event, BuildFinished):
                return
        raise self._stream_closed()

    def parse_line(self, line: str, line_number: int) -> Optional[BuildEvent]:
        self._stats.lines_read += 1
        text = line.strip()
        if not text:
            return None

        event = self._classify(text, line_number)
        self._stats.record(event)

        if isinstance(event, MalformedMessage):
            logger.warning(f"Malformed build message on line {line_number}: {event.error.message}")
        elif isinstance(event, BuildFinished):
            self._finished = event
            logger.debug(f"Build finished on line {line_number}, success={event.success}")

        return event

    def _classify(self, text: str, line_number: int) -> BuildEvent:
        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            return self._malformed(text, line_number, f"invalid JSON: {e.msg}", e)

        if not isinstance(payload, dict):
            return self._malformed(text, line_number, "expected a JSON object")

        reason = payload.get("reason")
        if reason is None:
            return self._malformed(text, line_number, "missing `reason` field")

        try:
            handler = self._handlers[MessageReason(reason)]
        except ValueError:
            return self._malformed(text, line_number, f"unknown reason {reason!r}", reason=str(reason))

        try:
            return handler(payload, line_number)
        except ValidationError as e:
            return self._malformed(
                text, line_number, f"invalid {reason} payload: {e.error_count()} error(s)", e, reason
            )
        except (TypeError, ValueError) as e:
            return self._malformed(text, line_number, f"invalid {reason} payload: {e}", e, reason)

    def _parse_artifact(self, payload: Dict[str, Any], line_number: int) -> BuildEvent:
        artifact = ExecutableArtifact.model_validate(payload)
        return ArtifactProduced(line_number=line_number, artifact=artifact)

    def _parse_compiler_message(self, payload: Dict[str, Any], line_number: int) -> BuildEvent:
        message = payload.get("message")
        if not isinstance(message, dict):
            raise ValueError("`message` must be an object")
        if "message" not in message or "level" not in message:
            raise ValueError("diagnostic lacks `message` or `level`")

        return CompilerMessage(
            line_number=line_number,
            payload=message,
            package_id=PackageId.model_validate(payload.get("package_id")),
            target=TargetDescriptor.model_validate(payload.get("target")),
        )

    def _parse_build_script(self, payload: Dict[str, Any], line_number: int) -> BuildEvent:
        output = BuildScriptOutput.model_validate(payload)
        return BuildScriptExecuted(line_number=line_number, output=output)

    def _parse_build_finished(self, payload: Dict[str, Any], line_number: int) -> BuildEvent:
        success = payload.get("success")
        if not isinstance(success, bool):
            raise ValueError("`success` must be a boolean")
        return BuildFinished(line_number=line_number, success=success)

    def _malformed(
        self,
        text: str,
        line_number: int,
        problem: str,
        cause: Optional[Exception] = None,
        reason: Optional[str] = None,
    ) -> MalformedMessage:
        error = MalformedMessageException(
            message=f"Line {line_number}: {problem}",
            line_number=line_number,
            line=text,
            reason=reason,
            cause=cause,
        )
        return MalformedMessage(line_number=line_number, line=text, error=error)

    def _stream_closed(self) -> AbnormalTerminationException:
        return AbnormalTerminationException(
            message="Build output closed without a build-finished message",
            details={"lines_read": self._stats.lines_read},
        )

    def _reset(self) -> None:
        self._stats = ParserStats()
        self._finished = None

    @staticmethod
    def _decode(raw_line: Union[str, bytes]) -> str:
        if isinstance(raw_line, bytes):
            return raw_line.decode("utf-8", errors="replace")
        return raw_line

from typing import Optional, Dict, List, Callable, Set, Tuple
from dataclasses import dataclass, field
import asyncio
import os

from seacan.analyzer.diagnostic_enricher import DiagnosticEnricher
from seacan.analyzer.stderr_classifier import StderrClassifier, StderrCategory
from seacan.builder.message_parser import (
    MessageStreamParser,
    BuildEvent,
    ArtifactProduced,
    CompilerMessage,
    BuildScriptExecuted,
    BuildFinished,
    MalformedMessage,
)
from seacan.common.dto.artifact import ExecutableArtifact
from seacan.common.dto.diagnostic import BuildDiagnostic, BuildScriptOutput
from seacan.common.dto.request import CompileRequest
from seacan.common.config.constants import BuildMode, STREAM_LINE_LIMIT_BYTES
from seacan.common.config.settings import Settings, get_settings
from seacan.common.config.logging_config import get_logger, get_build_logger, LoggerAdapter
from seacan.common.exceptions.build_exceptions import (
    BuildException,
    BuildFailedException,
    TargetNotFoundException,
    PackageNotFoundException,
    AbnormalTerminationException,
    BuildTimeoutException,
)


logger = get_logger(__name__)

DiagnosticCallback = Callable[[BuildDiagnostic], None]


@dataclass
class BuildResult:
    artifacts: List[ExecutableArtifact] = field(default_factory=list)
    diagnostics: List[BuildDiagnostic] = field(default_factory=list)
    build_scripts: List[BuildScriptOutput] = field(default_factory=list)
    malformed: List[MalformedMessage] = field(default_factory=list)
    exit_code: int = 0
    duration_seconds: float = 0.0
    command: List[str] = field(default_factory=list)

    @property
    def warnings(self) -> List[BuildDiagnostic]:
        return [d for d in self.diagnostics if d.is_warning]

    @property
    def errors(self) -> List[BuildDiagnostic]:
        return [d for d in self.diagnostics if d.is_error]

    @property
    def executables(self) -> List[ExecutableArtifact]:
        return [a for a in self.artifacts if a.is_executable]


@dataclass
class BuildExecutionContext:
    request: CompileRequest
    command: List[str]
    build_logger: LoggerAdapter
    artifacts: List[ExecutableArtifact] = field(default_factory=list)
    seen_keys: Set[Tuple[str, ...]] = field(default_factory=set)
    diagnostics: List[BuildDiagnostic] = field(default_factory=list)
    build_scripts: List[BuildScriptOutput] = field(default_factory=list)
    malformed: List[MalformedMessage] = field(default_factory=list)
    finished: Optional[BuildFinished] = None
    stream_error: Optional[AbnormalTerminationException] = None
    stderr_chunks: List[str] = field(default_factory=list)

    @property
    def package(self) -> str:
        return self.request.package.as_repr()

    @property
    def stderr(self) -> str:
        return "".join(self.stderr_chunks)

    @property
    def has_errors(self) -> bool:
        return any(d.is_error for d in self.diagnostics)


class BuildExecutor:
    """Runs one cargo build and folds its message stream into a result.

    A build succeeds only when cargo exits with status zero, reports
    ``build-finished`` with ``success: true`` and no error diagnostic was
    seen. Every other outcome raises: :class:`BuildFailedException` (or one
    of its subclasses) for compilation problems, and
    :class:`AbnormalTerminationException` when cargo could not be started,
    was killed or stopped talking before the build finished.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        enricher: Optional[DiagnosticEnricher] = None,
        stderr_classifier: Optional[StderrClassifier] = None,
        on_diagnostic: Optional[DiagnosticCallback] = None,
    ):
        self._settings = settings or get_settings()
        self._enricher = enricher or DiagnosticEnricher()
        self._stderr_classifier = stderr_classifier or StderrClassifier()
        self._on_diagnostic = on_diagnostic

    def build_command(self, request: CompileRequest) -> List[str]:
        cargo = request.cargo_path or self._settings.cargo_path
        message_format = request.message_format or self._settings.message_format

        if request.mode == BuildMode.TEST:
            command = [cargo, "test", "--no-run"]
        else:
            command = [cargo, "build"]

        command.extend([
            f"--message-format={message_format}",
            "--package", request.package.as_repr(),
        ])
        if request.features is not None:
            command.extend(request.features.to_args())
        if request.release:
            command.append("--release")
        if request.target_dir is not None:
            command.extend(["--target-dir", str(request.target_dir)])
        command.extend(request.target_args())
        return command

    def build_environment(self, request: CompileRequest) -> Dict[str, str]:
        env = os.environ.copy()
        env.setdefault("CARGO_TERM_COLOR", "never")
        env.update(request.env)
        return env

    async def execute(self, request: CompileRequest) -> BuildResult:
        command = self.build_command(request)
        context = BuildExecutionContext(
            request=request,
            command=command,
            build_logger=get_build_logger(
                package=request.package.as_repr(),
                build_mode=request.mode.value,
                target=request.target_name,
            ),
        )
        context.build_logger.info(f"Running {' '.join(command)}")

        loop = asyncio.get_running_loop()
        started = loop.time()

        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                cwd=str(request.workspace) if request.workspace else None,
                env=self.build_environment(request),
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=STREAM_LINE_LIMIT_BYTES,
            )
        except OSError as e:
            raise AbnormalTerminationException(
                message=f"Failed to start {command[0]}: {e}",
                package=context.package,
                command=command,
                cause=e,
            )

        timeout = self._settings.build_timeout_seconds
        try:
            exit_code = await asyncio.wait_for(self._communicate(process, context), timeout=timeout)
        except asyncio.TimeoutError:
            await self._kill(process)
            raise BuildTimeoutException(
                message=f"cargo did not finish within {timeout}s",
                timeout_seconds=timeout,
                elapsed_seconds=loop.time() - started,
                package=context.package,
                command=command,
                stderr=self._excerpt(context.stderr),
            )
        except (asyncio.CancelledError, AbnormalTerminationException):
            await self._kill(process)
            raise

        duration = loop.time() - started
        try:
            self._check_outcome(context, exit_code)
        except BuildException as e:
            if context.malformed:
                e.with_context(malformed_lines=[m.line_number for m in context.malformed])
            raise

        context.build_logger.info(
            f"Build finished in {duration:.2f}s: "
            f"{len(context.artifacts)} artifact(s), "
            f"{sum(1 for d in context.diagnostics if d.is_warning)} warning(s)"
        )
        return BuildResult(
            artifacts=context.artifacts,
            diagnostics=context.diagnostics,
            build_scripts=context.build_scripts,
            malformed=context.malformed,
            exit_code=exit_code,
            duration_seconds=duration,
            command=command,
        )

    async def _communicate(self, process: asyncio.subprocess.Process, context: BuildExecutionContext) -> int:
        await asyncio.gather(
            self._consume_stdout(process, context),
            self._drain_stderr(process, context),
        )
        return await process.wait()

    async def _consume_stdout(self, process: asyncio.subprocess.Process, context: BuildExecutionContext) -> None:
        parser = MessageStreamParser()
        try:
            async for event in parser.aparse(process.stdout):
                self._handle_event(event, context)
        except AbnormalTerminationException as e:
            context.stream_error = e
        except ValueError as e:
            # StreamReader raises ValueError once a line exceeds its limit.
            raise AbnormalTerminationException(
                message=f"Could not read cargo's message stream: {e}",
                package=context.package,
                command=context.command,
                cause=e,
            )

        # Anything after build-finished is not part of the protocol.
        trailing = await process.stdout.read()
        if trailing.strip():
            context.build_logger.debug(f"Ignoring {len(trailing)} byte(s) after build-finished")

    async def _drain_stderr(self, process: asyncio.subprocess.Process, context: BuildExecutionContext) -> None:
        async for line in process.stderr:
            context.stderr_chunks.append(line.decode("utf-8", errors="replace"))

    def _handle_event(self, event: BuildEvent, context: BuildExecutionContext) -> None:
        if isinstance(event, ArtifactProduced):
            self._record_artifact(event.artifact, context)
        elif isinstance(event, CompilerMessage):
            diagnostic = self._enricher.enrich(event.payload, event.package_id, event.target)
            context.diagnostics.append(diagnostic)
            context.build_logger.debug(diagnostic.rendered_message)
            self._notify(diagnostic)
        elif isinstance(event, BuildScriptExecuted):
            context.build_scripts.append(event.output)
            context.build_logger.debug(event.text)
        elif isinstance(event, BuildFinished):
            context.finished = event
        elif isinstance(event, MalformedMessage):
            context.malformed.append(event)

    def _record_artifact(self, artifact: ExecutableArtifact, context: BuildExecutionContext) -> None:
        if context.request.mode == BuildMode.TEST and not artifact.is_test_harness:
            logger.debug(f"Skipping non-test artifact {artifact.display_name}")
            return

        key = artifact.key
        if key in context.seen_keys:
            logger.warning(f"Duplicate artifact for {artifact.display_name}, keeping the first one")
            return

        context.seen_keys.add(key)
        context.artifacts.append(artifact)

    def _notify(self, diagnostic: BuildDiagnostic) -> None:
        if self._on_diagnostic is None:
            return
        try:
            self._on_diagnostic(diagnostic)
        except Exception as e:
            logger.warning(f"Diagnostic callback raised {type(e).__name__}: {e}")

    def _check_outcome(self, context: BuildExecutionContext, exit_code: int) -> None:
        stderr = context.stderr

        if exit_code < 0:
            raise AbnormalTerminationException(
                message=f"cargo was terminated by signal {-exit_code}",
                exit_code=exit_code,
                stderr=self._excerpt(stderr),
                package=context.package,
                command=context.command,
            )

        if context.finished is None:
            if exit_code != 0:
                classification = self._stderr_classifier.classify(stderr)
                if classification.is_explained:
                    raise self._failure(context, exit_code)

            raise AbnormalTerminationException(
                message=f"cargo exited with status {exit_code} before the build finished",
                exit_code=exit_code,
                stderr=self._excerpt(stderr),
                package=context.package,
                command=context.command,
                cause=context.stream_error,
            )

        if exit_code != 0 or not context.finished.success or context.has_errors:
            raise self._failure(context, exit_code)

    def _failure(self, context: BuildExecutionContext, exit_code: int) -> BuildFailedException:
        stderr = context.stderr
        classification = self._stderr_classifier.classify(stderr)
        diagnostics = list(context.diagnostics)
        if not context.has_errors:
            diagnostics.append(
                self._stderr_classifier.synthesize_diagnostic(stderr, exit_code, classification)
            )

        error_count = sum(1 for d in diagnostics if d.is_error)
        context.build_logger.error(f"Build failed with {error_count} error(s), exit code {exit_code}")

        excerpt = self._excerpt(stderr)
        if classification.category == StderrCategory.TARGET_NOT_FOUND:
            return TargetNotFoundException(
                target_name=classification.subject or context.request.target_name or "",
                diagnostics=diagnostics,
                exit_code=exit_code,
                stderr=excerpt,
                package=context.package,
                command=context.command,
            )
        if classification.category == StderrCategory.PACKAGE_NOT_FOUND:
            return PackageNotFoundException(
                package_spec=classification.subject or context.package,
                diagnostics=diagnostics,
                exit_code=exit_code,
                stderr=excerpt,
                package=context.package,
                command=context.command,
            )
        return BuildFailedException(
            message=f"Build of `{context.package}` failed with {error_count} error(s)",
            diagnostics=diagnostics,
            exit_code=exit_code,
            stderr=excerpt,
            package=context.package,
            command=context.command,
        )

    def _excerpt(self, stderr: str) -> str:
        limit = self._settings.stderr_excerpt_chars
        if limit and len(stderr) > limit:
            return stderr[-limit:]
        return stderr

    async def _kill(self, process: asyncio.subprocess.Process) -> None:
        if process.returncode is not None:
            return
        try:
            process.kill()
        except ProcessLookupError:
            return
        await process.wait()

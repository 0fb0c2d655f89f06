"""Confirm the deployment identity before anything in the output tree changes.

The operator's logged-in hosting account decides which direction a deploy may
go. The identity check command (``firebase list --interactive`` by default)
prints the projects visible to that account; the gate classifies its output
and authorizes exactly one target:

* no project table in the output -> indeterminate, nothing runs;
* a production project is listed -> production only;
* no production project is listed -> development only.

The gate fails closed: anything other than an explicit match denies the
deploy, and nothing is retried.
"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import dataclasses as dc
import enum
import logging
import subprocess

from .config import DeployTarget, IdentitySettings

logger = logging.getLogger(__name__)


class IdentityCheckError(RuntimeError):
    """Raised when the identity check command cannot be run to completion."""


class IdentityClass(enum.Enum):
    """What the identity report says about the logged-in account."""

    UNRECOGNIZED = "unrecognized"
    PRODUCTION = "production"
    NON_PRODUCTION = "non-production"


class Decision(enum.Enum):
    """Outcome of an authorization request."""

    AUTHORIZED = "authorized"
    DENIED = "denied"
    INDETERMINATE = "indeterminate"


@dc.dataclass(slots=True, frozen=True)
class IdentityReport:
    """Captured output of one identity check invocation."""

    stdout: str
    stderr: str = ""
    returncode: int = 0

    @property
    def text(self) -> str:
        """Combined standard output and error text."""
        if not self.stderr:
            return self.stdout
        return f"{self.stdout}\n{self.stderr}"

    def classify(self, settings: IdentitySettings) -> IdentityClass:
        """Classify the report using the configured literal markers."""
        text = self.text
        if settings.report_marker not in text:
            return IdentityClass.UNRECOGNIZED
        if settings.production_marker in text:
            return IdentityClass.PRODUCTION
        return IdentityClass.NON_PRODUCTION


@dc.dataclass(slots=True, frozen=True)
class AuthorizationResult:
    """The gate's answer for one deploy target."""

    decision: Decision
    target: DeployTarget
    identity: IdentityClass
    message: str

    @property
    def authorized(self) -> bool:
        return self.decision is Decision.AUTHORIZED


IdentityCheck = cabc.Callable[[], cabc.Awaitable[IdentityReport]]


def run_identity_command(
    command: cabc.Sequence[str], *, timeout: float | None = None
) -> IdentityReport:
    """Run the identity check command and capture its output.

    Raises
    ------
    IdentityCheckError
        If the executable is missing, exits non-zero, or times out.
    """
    try:
        completed = subprocess.run(  # noqa: S603
            list(command),
            check=True,
            text=True,
            capture_output=True,
            timeout=timeout,
        )
    except FileNotFoundError as exc:
        msg = f"Identity check command not found: {command[0]}"
        raise IdentityCheckError(msg) from exc
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or exc.stdout or "").strip()
        msg = f"Identity check exited with status {exc.returncode}"
        if detail:
            msg = f"{msg}: {detail}"
        raise IdentityCheckError(msg) from exc
    except subprocess.TimeoutExpired as exc:
        msg = f"Identity check timed out after {exc.timeout} seconds"
        raise IdentityCheckError(msg) from exc
    return IdentityReport(
        stdout=completed.stdout or "",
        stderr=completed.stderr or "",
        returncode=completed.returncode,
    )


def decide(identity: IdentityClass, target: DeployTarget) -> AuthorizationResult:
    """Map an identity classification and target onto a decision."""
    if identity is IdentityClass.UNRECOGNIZED:
        return AuthorizationResult(
            Decision.INDETERMINATE,
            target,
            identity,
            "Unexpected output from the identity check.",
        )
    production_identity = identity is IdentityClass.PRODUCTION
    production_target = target is DeployTarget.PRODUCTION
    if production_identity == production_target:
        return AuthorizationResult(
            Decision.AUTHORIZED,
            target,
            identity,
            f"You are allowed to deploy on {target}.",
        )
    return AuthorizationResult(
        Decision.DENIED,
        target,
        identity,
        f"You are not allowed to deploy on {target}.",
    )


class IdentityGate:
    """Authorize a deploy target against the externally reported identity."""

    def __init__(
        self,
        settings: IdentitySettings | None = None,
        *,
        check: IdentityCheck | None = None,
    ) -> None:
        """Initialize the gate.

        Parameters
        ----------
        settings : IdentitySettings, optional
            Command and markers used to recognise the identity report.
        check : callable, optional
            Awaitable factory returning an :class:`IdentityReport`. Defaults to
            running ``settings.command`` in a worker thread.
        """
        self.settings = settings or IdentitySettings()
        self._check = check or self._run_command

    async def _run_command(self) -> IdentityReport:
        return await asyncio.to_thread(
            run_identity_command,
            self.settings.command,
            timeout=self.settings.timeout,
        )

    async def authorize(self, target: DeployTarget) -> AuthorizationResult:
        """Run the identity check and decide whether ``target`` may proceed.

        Raises
        ------
        IdentityCheckError
            If the identity check itself fails.
        """
        report = await self._check()
        logger.debug("identity check stdout:\n%s", report.stdout)
        if report.stderr:
            logger.debug("identity check stderr:\n%s", report.stderr)
        result = decide(report.classify(self.settings), target)
        if result.authorized:
            logger.info(result.message)
        else:
            logger.warning("%s (%s)", result.message, result.decision.value)
        return result


__all__ = [
    "AuthorizationResult",
    "Decision",
    "IdentityCheck",
    "IdentityCheckError",
    "IdentityClass",
    "IdentityGate",
    "IdentityReport",
    "decide",
    "run_identity_command",
]

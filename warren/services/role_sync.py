"""
warren.services.role_sync — Reward-Role Synchronizer
=====================================================

Keeps a member's **reward roles** in step with their level.

A guild configures reward rules (``role_id`` unlocked at ``level``).  After
the leveling feature has committed a member's new level, the synchronizer:

1. Loads the guild's rules.  No rules → nothing to do.
2. Picks the single target rule: highest threshold ≤ the member's level.
   Equal thresholds resolve to the rule configured first.
3. Reads the member's current roles.
4. Stops if the member already holds exactly the target among the reward
   roles (idempotent; the hot path no-ops here).
5. Removes stale reward roles, then adds the target.  Each call is
   independent; a failed removal does not block the addition.
6. Re-reads the roles and logs a mismatch (never retried).
7. Announces ``LEVEL_UP`` / ``LEVEL_DOWN`` transitions in the configured
   channel.

Every step returns a :class:`StepResult`; the orchestration decides whether
to continue, and only :meth:`RoleSynchronizer.synchronize` turns failures
into log entries.  It never raises: a failed role sync must not block the
XP update that triggered it.

Two concurrent syncs for the same member are not serialized.  Both may read
the same stale role set and the later mutation wins.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Awaitable, Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar

from warren.engine.leveling import LevelTransition, MemberLevelState

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = [
    "FailureKind",
    "MembershipGateway",
    "RewardConfig",
    "RewardConfigProvider",
    "RewardRoleRule",
    "RoleSynchronizer",
    "StepFailure",
    "StepResult",
    "SyncDecision",
    "SyncReport",
    "build_notification",
    "compute_decision",
    "select_target_rule",
]


# ---------------------------------------------------------------------------
# Data model
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RewardRoleRule:
    """Grant ``role_id`` once a member reaches ``level``."""

    role_id: str
    level: int


@dataclass(frozen=True, slots=True)
class RewardConfig:
    """A guild's reward rules (in configured order) and announce channel."""

    rules: tuple[RewardRoleRule, ...]
    channel_id: str | None = None

    @property
    def role_ids(self) -> frozenset[str]:
        return frozenset(rule.role_id for rule in self.rules)


@dataclass(frozen=True, slots=True)
class SyncDecision:
    """Derived fresh on every sync; never cached."""

    target_role: str | None
    roles_to_remove: frozenset[str]
    roles_to_add: frozenset[str]
    should_notify: bool

    @property
    def in_sync(self) -> bool:
        return not self.roles_to_remove and not self.roles_to_add


class FailureKind(enum.StrEnum):
    CONFIG_ABSENT = "config_absent"
    GATEWAY_FAILURE = "gateway_failure"
    VERIFICATION_MISMATCH = "verification_mismatch"


@dataclass(frozen=True, slots=True)
class StepFailure:
    step: str
    kind: FailureKind
    error: BaseException | None = None
    detail: str = ""


@dataclass(frozen=True, slots=True)
class StepResult(Generic[T]):
    value: T | None = None
    failure: StepFailure | None = None

    @property
    def ok(self) -> bool:
        return self.failure is None


@dataclass(slots=True)
class SyncReport:
    """What one :meth:`RoleSynchronizer.synchronize` call did."""

    decision: SyncDecision | None = None
    failures: list[StepFailure] = field(default_factory=list)
    notified: bool = False

    @property
    def ok(self) -> bool:
        return not any(
            f.kind is not FailureKind.CONFIG_ABSENT for f in self.failures
        )


# ---------------------------------------------------------------------------
# Collaborators
# ---------------------------------------------------------------------------
class RewardConfigProvider(Protocol):
    async def get_reward_rules(
        self, app_id: str, guild_id: str
    ) -> RewardConfig | None: ...


class MembershipGateway(Protocol):
    async def get_member_roles(self, guild_id: str, member_id: str) -> set[str]: ...

    async def add_roles(
        self, guild_id: str, member_id: str, role_ids: Iterable[str]
    ) -> None: ...

    async def remove_roles(
        self, guild_id: str, member_id: str, role_ids: Iterable[str]
    ) -> None: ...

    async def send_message(self, channel_id: str, text: str) -> None: ...

    async def get_role_name(self, guild_id: str, role_id: str) -> str | None: ...


# ---------------------------------------------------------------------------
# Pure decision logic
# ---------------------------------------------------------------------------
def select_target_rule(
    rules: Iterable[RewardRoleRule], level: int
) -> RewardRoleRule | None:
    """Highest threshold ≤ *level*; ties go to the earliest configured rule."""
    ordered = sorted(
        enumerate(rules), key=lambda pair: (-pair[1].level, pair[0])
    )
    for _, rule in ordered:
        if rule.level <= level:
            return rule
    return None


def compute_decision(
    config: RewardConfig,
    held_roles: Iterable[str],
    state: MemberLevelState,
) -> SyncDecision:
    """Diff the member's held roles against the single target reward role."""
    held = set(held_roles)
    target = select_target_rule(config.rules, state.level)
    target_id = target.role_id if target else None

    held_rewards = held & config.role_ids
    to_remove = held_rewards - {target_id} if target_id else held_rewards
    to_add = {target_id} - held if target_id else set()

    changes = bool(to_remove or to_add)
    should_notify = (
        changes
        and target_id is not None
        and bool(config.channel_id)
        and state.transition in (LevelTransition.LEVEL_UP, LevelTransition.LEVEL_DOWN)
    )
    return SyncDecision(
        target_role=target_id,
        roles_to_remove=frozenset(to_remove),
        roles_to_add=frozenset(to_add),
        should_notify=should_notify,
    )


def build_notification(
    member_id: str, state: MemberLevelState, role_name: str
) -> str:
    verb = (
        "leveled up"
        if state.transition is LevelTransition.LEVEL_UP
        else "leveled down"
    )
    return (
        f"⭐ <@{member_id}>, you've {verb} to level {state.level} "
        f"and have been awarded the role `{role_name}`! \U0001f389"
    )


# ---------------------------------------------------------------------------
# Orchestration
# ---------------------------------------------------------------------------
class RoleSynchronizer:
    """Reconciles a member's reward roles with their level.

    Parameters
    ----------
    provider:
        Source of a guild's :class:`RewardConfig`.
    gateway:
        Reads and mutates member roles, sends the announcement.
    """

    def __init__(
        self, provider: RewardConfigProvider, gateway: MembershipGateway
    ) -> None:
        self.provider = provider
        self.gateway = gateway

    async def synchronize(
        self,
        app_id: str,
        guild_id: str,
        member_id: str,
        state: MemberLevelState,
    ) -> SyncReport:
        """Run one best-effort sync.  Never raises."""
        report = SyncReport()
        try:
            await self._run(report, str(app_id), str(guild_id), str(member_id), state)
        except Exception as exc:
            report.failures.append(
                StepFailure("synchronize", FailureKind.GATEWAY_FAILURE, exc)
            )

        for failure in report.failures:
            self._log_failure(failure, guild_id, member_id)
        return report

    # -------------------------------------------------------------------
    # Steps
    # -------------------------------------------------------------------
    async def _attempt(
        self, step: str, func: Callable[..., Awaitable[Any]], *args: Any
    ) -> StepResult:
        try:
            return StepResult(value=await func(*args))
        except Exception as exc:
            return StepResult(
                failure=StepFailure(step, FailureKind.GATEWAY_FAILURE, exc)
            )

    async def _run(
        self,
        report: SyncReport,
        app_id: str,
        guild_id: str,
        member_id: str,
        state: MemberLevelState,
    ) -> None:
        # 1. Rules
        loaded = await self._attempt(
            "load_rules", self.provider.get_reward_rules, app_id, guild_id
        )
        if not loaded.ok:
            report.failures.append(loaded.failure)
            return
        config: RewardConfig | None = loaded.value
        if config is None or not config.rules:
            report.failures.append(
                StepFailure("load_rules", FailureKind.CONFIG_ABSENT)
            )
            return

        # 2–4. Current roles → decision → short-circuit
        current = await self._attempt(
            "read_roles", self.gateway.get_member_roles, guild_id, member_id
        )
        if not current.ok:
            report.failures.append(current.failure)
            return

        decision = compute_decision(config, current.value, state)
        report.decision = decision
        if decision.in_sync:
            logger.debug(
                "Reward roles already in sync for %s in guild %s (target=%s)",
                member_id, guild_id, decision.target_role,
            )
            return

        logger.debug(
            "Reward role diff for %s in guild %s: -%s +%s",
            member_id, guild_id,
            sorted(decision.roles_to_remove), sorted(decision.roles_to_add),
        )

        # 5. Removals before additions; each independent
        if decision.roles_to_remove:
            removed = await self._attempt(
                "remove_roles", self.gateway.remove_roles,
                guild_id, member_id, set(decision.roles_to_remove),
            )
            if not removed.ok:
                report.failures.append(removed.failure)

        added_ok = True
        if decision.roles_to_add:
            added = await self._attempt(
                "add_roles", self.gateway.add_roles,
                guild_id, member_id, set(decision.roles_to_add),
            )
            if not added.ok:
                added_ok = False
                report.failures.append(added.failure)

        # 6. Verify (best effort)
        after = await self._attempt(
            "verify", self.gateway.get_member_roles, guild_id, member_id
        )
        if not after.ok:
            report.failures.append(after.failure)
        else:
            expected = {decision.target_role} if decision.target_role else set()
            actual = set(after.value) & config.role_ids
            if actual != expected:
                report.failures.append(StepFailure(
                    "verify",
                    FailureKind.VERIFICATION_MISMATCH,
                    detail=f"expected {sorted(expected)}, found {sorted(actual)}",
                ))
            else:
                logger.info(
                    "Reward roles synced for %s in guild %s → %s",
                    member_id, guild_id, decision.target_role or "(none)",
                )

        # 7. Announce
        if decision.should_notify and added_ok:
            report.notified = await self._notify(
                report, config, guild_id, member_id, state, decision.target_role
            )

    async def _notify(
        self,
        report: SyncReport,
        config: RewardConfig,
        guild_id: str,
        member_id: str,
        state: MemberLevelState,
        role_id: str,
    ) -> bool:
        named = await self._attempt(
            "role_name", self.gateway.get_role_name, guild_id, role_id
        )
        if not named.ok:
            report.failures.append(named.failure)
        role_name = named.value or role_id

        sent = await self._attempt(
            "notify", self.gateway.send_message,
            config.channel_id, build_notification(member_id, state, role_name),
        )
        if not sent.ok:
            report.failures.append(sent.failure)
            return False
        return True

    # -------------------------------------------------------------------
    # Logging boundary
    # -------------------------------------------------------------------
    @staticmethod
    def _log_failure(failure: StepFailure, guild_id: str, member_id: str) -> None:
        if failure.kind is FailureKind.CONFIG_ABSENT:
            logger.debug("No reward roles configured for guild %s", guild_id)
        elif failure.kind is FailureKind.VERIFICATION_MISMATCH:
            logger.warning(
                "Reward role verification mismatch for %s in guild %s: %s",
                member_id, guild_id, failure.detail,
            )
        else:
            logger.error(
                "Reward role sync step %r failed for %s in guild %s",
                failure.step, member_id, guild_id,
                exc_info=failure.error,
            )

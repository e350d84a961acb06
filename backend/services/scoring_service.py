"""
Point accumulation and punishment escalation.

Every operation that changes a user's points runs as one transaction under
that user's lock:

    lock user -> read -> mutate ledger and status -> commit -> unlock

The platform side effect (timeout, ban, unban) is performed only after the
commit. A failed platform call is logged and reported back to the caller;
the ledger keeps the decided punishment.
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from loguru import logger
from sqlalchemy.orm import Session

from core.user_locks import user_locks
from helpers.time_utils import ensure_utc, minutes_from, utc_now
from models.exceptions import (
    ModeratedUserNotFoundException,
    UnknownWarningLevelException,
    WarningAlreadyIgnoredException,
    WarningNotFoundException,
)
from repositories.db_models import (
    ModeratedUser,
    ModerationWarning,
    Punishment,
    PunishmentRule,
    PunishmentType,
    WarningLevel,
)
from repositories.punishment_repository import (
    PunishmentRepository,
    PunishmentRuleRepository,
)
from repositories.rule_catalog_repository import WarningLevelRepository
from repositories.user_repository import UserRepository
from repositories.warning_repository import WarningRepository
from services.punishment_executor import (
    ExecutionResult,
    PunishmentExecutor,
    get_default_executor,
)

SYSTEM_REVIEWER = "system"
RESET_REASON = "Warnings reset by administrator"
RECALCULATED_REASON = "Reapplied after recalculating warning points"

audit_log = logger.bind(audit=True)


@dataclass(frozen=True)
class PunishmentDecision:
    """Result of evaluating the active punishment rules against a total."""

    rule: Optional[PunishmentRule] = None
    should_apply: bool = False

    @property
    def punishment_type(self) -> Optional[PunishmentType]:
        return self.rule.punishment_type if self.rule is not None else None


@dataclass
class WarningOutcome:
    """What recording one warning did to the ledger."""

    warning: ModerationWarning
    level: WarningLevel
    previous_total: int
    new_total: int
    punishment: Optional[Punishment] = None
    execution: Optional[ExecutionResult] = None

    @property
    def points_added(self) -> int:
        return self.warning.points

    @property
    def punishment_applied(self) -> Optional[PunishmentType]:
        return self.punishment.punishment_type if self.punishment is not None else None

    @property
    def punishment_executed(self) -> Optional[bool]:
        return self.execution.success if self.execution is not None else None

    @property
    def execution_error(self) -> Optional[str]:
        return self.execution.error if self.execution is not None else None


@dataclass
class LedgerChangeOutcome:
    """What a reversal or re-derivation did, including the platform calls it made."""

    user: ModeratedUser
    previous_total: int
    warning: Optional[ModerationWarning] = None
    granted: list[Punishment] = field(default_factory=list)
    lifted: list[PunishmentType] = field(default_factory=list)
    executions: list[ExecutionResult] = field(default_factory=list)

    @property
    def new_total(self) -> int:
        return self.user.total_points

    @property
    def punishment_executed(self) -> Optional[bool]:
        """None when nothing had to be done on the platform."""
        if not self.executions:
            return None
        return all(result.success for result in self.executions)

    @property
    def execution_error(self) -> Optional[str]:
        errors = [r.error for r in self.executions if not r.success and r.error]
        return "; ".join(errors) if errors else None


@dataclass
class StatusChange:
    """Punishments granted and lifted by a status re-derivation."""

    granted: list[Punishment] = field(default_factory=list)
    lifted: list[PunishmentType] = field(default_factory=list)

    def __bool__(self) -> bool:
        return bool(self.granted or self.lifted)


class ScoringService:
    """Service for warning points and automatic punishments."""

    # ------------------------------------------------------------------
    # Pure decision helpers
    # ------------------------------------------------------------------

    @staticmethod
    def order_rules(rules: Sequence[PunishmentRule]) -> list[PunishmentRule]:
        """
        Order rules for evaluation: highest threshold first.

        Rules sharing a threshold put bans before mutes, then lower ids
        first, so the result never depends on query order.
        """
        return sorted(
            rules,
            key=lambda r: (
                -r.point_threshold,
                0 if r.punishment_type == PunishmentType.BAN else 1,
                r.id or 0,
            ),
        )

    @staticmethod
    def is_currently_muted(user: ModeratedUser, now: Optional[datetime] = None) -> bool:
        """A mute whose expiry has passed no longer counts."""
        if not user.is_muted:
            return False
        expires_at = ensure_utc(user.mute_expires_at)
        if expires_at is None:
            return True
        return expires_at > (now or utc_now())

    @staticmethod
    def decide_punishment(
        total_points: int,
        active_rules: Sequence[PunishmentRule],
        is_banned: bool,
        is_muted: bool,
    ) -> PunishmentDecision:
        """
        Pick the punishment a new total earns.

        Walks the active rules from the highest threshold down and stops at
        the first one the total reaches. Only that rule is considered; lower
        rules are shadowed.

        Args:
            total_points: The user's total after the new warning
            active_rules: Snapshot of active punishment rules
            is_banned: Current ban status
            is_muted: Current (unexpired) mute status

        Returns:
            The applicable rule (if any) and whether it must be applied now
        """
        for rule in ScoringService.order_rules(active_rules):
            if rule.point_threshold > total_points:
                continue
            if rule.punishment_type == PunishmentType.BAN:
                return PunishmentDecision(rule=rule, should_apply=not is_banned)
            return PunishmentDecision(rule=rule, should_apply=not is_muted)
        return PunishmentDecision()

    @staticmethod
    def derive_status(
        total_points: int, active_rules: Sequence[PunishmentRule]
    ) -> tuple[bool, Optional[PunishmentRule]]:
        """
        Status justified by a total, ban and mute evaluated independently.

        Returns:
            (should_be_banned, mute_rule) where mute_rule is the
            highest-threshold mute rule the total reaches, or None
        """
        ordered = ScoringService.order_rules(active_rules)
        should_ban = any(
            r.punishment_type == PunishmentType.BAN and r.point_threshold <= total_points
            for r in ordered
        )
        mute_rule = next(
            (
                r
                for r in ordered
                if r.punishment_type == PunishmentType.MUTE
                and r.point_threshold <= total_points
            ),
            None,
        )
        return should_ban, mute_rule

    # ------------------------------------------------------------------
    # Ledger mutations
    # ------------------------------------------------------------------

    @staticmethod
    def record_warning(
        db: Session,
        user_id: str,
        username: str,
        level_name: str,
        rule_triggered: str,
        message_content: str,
        message_context: Optional[list[dict[str, Any]]] = None,
        channel_id: Optional[str] = None,
        executor: Optional[PunishmentExecutor] = None,
    ) -> WarningOutcome:
        """
        Record a warning, add its points and escalate if a threshold is crossed.

        Args:
            db: Database session
            user_id: Platform user id (created on first offense)
            username: Display name
            level_name: Warning level chosen by the classifier
            rule_triggered: Classifier explanation of the violation
            message_content: The offending message
            message_context: Preceding messages, oldest first
            channel_id: Channel the message was posted in
            executor: Platform executor (configured default when None)

        Returns:
            WarningOutcome with the new total and any punishment

        Raises:
            UnknownWarningLevelException: If level_name is not configured
        """
        level = (
            WarningLevelRepository(db).get_by_name(level_name)
            if isinstance(level_name, str)
            else None
        )
        if level is None:
            logger.warning(
                f"Classifier returned unknown warning level '{level_name}'",
                user_id=user_id,
            )
            raise UnknownWarningLevelException(level_name)

        user_repo = UserRepository(db)
        warning_repo = WarningRepository(db)
        now = utc_now()

        with user_locks.hold(user_id):
            try:
                user = user_repo.get_or_create_for_update(user_id, username)
                previous_total = user.total_points

                warning = ModerationWarning(
                    user_id=user_id,
                    level_id=level.id,
                    points=level.points,
                    rule_triggered=rule_triggered,
                    message_content=message_content,
                    message_context=list(message_context or []),
                    channel_id=channel_id,
                    message_deleted=level.delete_message,
                    created_at=now,
                )
                warning_repo.add(warning)

                user.total_points = previous_total + warning.points

                active_rules = PunishmentRuleRepository(db).get_active()
                decision = ScoringService.decide_punishment(
                    user.total_points,
                    active_rules,
                    is_banned=user.is_banned,
                    is_muted=ScoringService.is_currently_muted(user, now),
                )

                punishment = None
                if decision.should_apply:
                    punishment = ScoringService._grant(
                        db,
                        user,
                        decision.rule,
                        reason=(
                            f"Reached {user.total_points} warning points "
                            f"(threshold {decision.rule.point_threshold})"
                        ),
                        now=now,
                    )

                user_repo.commit()
            except Exception:
                user_repo.rollback()
                raise

            warning_repo.refresh(warning)
            user_repo.refresh(user)

        audit_log.info(
            f"Warning recorded: {level.name} (+{warning.points})",
            event="warning_recorded",
            user_id=user_id,
            warning_id=warning.id,
            previous_total=previous_total,
            new_total=user.total_points,
        )

        execution = None
        if punishment is not None:
            execution = ScoringService._execute_apply(
                executor or get_default_executor(), user_id, punishment
            )

        return WarningOutcome(
            warning=warning,
            level=level,
            previous_total=previous_total,
            new_total=user.total_points,
            punishment=punishment,
            execution=execution,
        )

    @staticmethod
    def ignore_warning(
        db: Session,
        warning_id: int,
        reviewer_id: str,
        reason: str,
        executor: Optional[PunishmentExecutor] = None,
    ) -> LedgerChangeOutcome:
        """
        Reverse a warning after human review.

        Subtracts the warning's points and lifts a ban or mute the new total
        no longer justifies. Never grants a punishment.

        Args:
            db: Database session
            warning_id: Warning to ignore
            reviewer_id: Moderator performing the review
            reason: Why the warning is ignored
            executor: Platform executor (configured default when None)

        Returns:
            LedgerChangeOutcome with the ignored warning and any lift results

        Raises:
            WarningNotFoundException: If the warning does not exist
            WarningAlreadyIgnoredException: If it was ignored before
            ModeratedUserNotFoundException: If the owning user is gone
        """
        warning_repo = WarningRepository(db)
        user_repo = UserRepository(db)

        warning = warning_repo.get_by_id(warning_id)
        if warning is None:
            raise WarningNotFoundException(warning_id)
        user_id = warning.user_id

        with user_locks.hold(user_id):
            try:
                warning = warning_repo.get_for_update(warning_id)
                if warning is None:
                    raise WarningNotFoundException(warning_id)
                if warning.ignored:
                    raise WarningAlreadyIgnoredException(warning_id)

                user = user_repo.get_for_update(user_id)
                if user is None:
                    raise ModeratedUserNotFoundException(user_id)

                now = utc_now()
                warning.ignored = True
                warning.ignored_at = now
                warning.ignored_by = reviewer_id
                warning.ignore_reason = reason

                previous_total = user.total_points
                user.total_points = ScoringService._reconciled_total(
                    db, user, previous_total - warning.points
                )

                lifted = ScoringService._lift_unjustified(
                    user, PunishmentRuleRepository(db).get_active(), now
                )

                user_repo.commit()
            except Exception:
                user_repo.rollback()
                raise

            user_repo.refresh(user)
            warning = warning_repo.get_with_relations(warning_id)

        audit_log.info(
            f"Warning {warning_id} ignored by {reviewer_id}",
            event="warning_ignored",
            user_id=user_id,
            warning_id=warning_id,
            previous_total=previous_total,
            new_total=user.total_points,
            lifted=[p.value for p in lifted],
        )

        executions = []
        if lifted:
            executions = ScoringService._execute_lifts(
                executor or get_default_executor(), user_id, lifted
            )

        return LedgerChangeOutcome(
            user=user,
            previous_total=previous_total,
            warning=warning,
            lifted=lifted,
            executions=executions,
        )

    @staticmethod
    def recalculate(
        db: Session, user_id: str, executor: Optional[PunishmentExecutor] = None
    ) -> LedgerChangeOutcome:
        """
        Re-derive a user's total and status from scratch.

        Used after a policy change or to repair drift. May grant as well as
        lift punishments. A justified mute always starts a fresh expiry from
        now and is re-applied on the platform, even if one was in effect.

        Args:
            db: Database session
            user_id: User to recalculate
            executor: Platform executor (configured default when None)

        Returns:
            LedgerChangeOutcome with the updated user and platform results

        Raises:
            ModeratedUserNotFoundException: If the user does not exist
        """
        user_repo = UserRepository(db)

        with user_locks.hold(user_id):
            try:
                user = user_repo.get_for_update(user_id)
                if user is None:
                    raise ModeratedUserNotFoundException(user_id)

                now = utc_now()
                previous_total = user.total_points
                user.total_points = WarningRepository(db).sum_active_points(user_id)

                change = ScoringService._apply_derived_status(
                    db, user, PunishmentRuleRepository(db).get_active(), now
                )

                user_repo.commit()
            except Exception:
                user_repo.rollback()
                raise

            user_repo.refresh(user)

        audit_log.info(
            f"Recalculated {user_id}: {previous_total} -> {user.total_points}",
            event="user_recalculated",
            user_id=user_id,
            previous_total=previous_total,
            new_total=user.total_points,
            granted=[p.punishment_type.value for p in change.granted],
            lifted=[p.value for p in change.lifted],
        )

        executions = []
        if change:
            executor = executor or get_default_executor()
            for punishment in change.granted:
                executions.append(
                    ScoringService._execute_apply(executor, user_id, punishment)
                )
            executions.extend(
                ScoringService._execute_lifts(executor, user_id, change.lifted)
            )

        return LedgerChangeOutcome(
            user=user,
            previous_total=previous_total,
            granted=change.granted,
            lifted=change.lifted,
            executions=executions,
        )

    @staticmethod
    def reset_warnings(
        db: Session, user_id: str, executor: Optional[PunishmentExecutor] = None
    ) -> LedgerChangeOutcome:
        """
        Ignore every active warning of a user and clear their status.

        Warnings are kept for audit, marked as ignored by ``system``.

        Args:
            db: Database session
            user_id: User to reset
            executor: Platform executor (configured default when None)

        Returns:
            LedgerChangeOutcome with the updated user and any lift results

        Raises:
            ModeratedUserNotFoundException: If the user does not exist
        """
        user_repo = UserRepository(db)

        with user_locks.hold(user_id):
            try:
                user = user_repo.get_for_update(user_id)
                if user is None:
                    raise ModeratedUserNotFoundException(user_id)

                now = utc_now()
                ignored_count = WarningRepository(db).ignore_all_active(
                    user_id, ignored_by=SYSTEM_REVIEWER, reason=RESET_REASON, now=now
                )

                previous_total = user.total_points
                lifted = []
                if user.is_banned:
                    lifted.append(PunishmentType.BAN)
                if ScoringService.is_currently_muted(user, now):
                    lifted.append(PunishmentType.MUTE)

                user.total_points = 0
                user.is_banned = False
                user.is_muted = False
                user.mute_expires_at = None

                user_repo.commit()
            except Exception:
                user_repo.rollback()
                raise

            user_repo.refresh(user)

        audit_log.info(
            f"Warnings reset for {user_id} ({ignored_count} ignored)",
            event="warnings_reset",
            user_id=user_id,
            previous_total=previous_total,
            ignored_count=ignored_count,
            lifted=[p.value for p in lifted],
        )

        executions = []
        if lifted:
            executions = ScoringService._execute_lifts(
                executor or get_default_executor(), user_id, lifted
            )

        return LedgerChangeOutcome(
            user=user,
            previous_total=previous_total,
            lifted=lifted,
            executions=executions,
        )

    @staticmethod
    def expire_mutes(db: Session, now: Optional[datetime] = None) -> int:
        """
        Clear mute flags whose expiry has passed.

        The platform timeout runs out by itself, so no executor call is made.

        Args:
            db: Database session
            now: Reference time (defaults to current UTC time)

        Returns:
            Number of users unmuted
        """
        now = now or utc_now()
        user_repo = UserRepository(db)
        expired = 0

        for user_id in user_repo.get_expired_mute_ids(now):
            with user_locks.hold(user_id):
                try:
                    user = user_repo.get_for_update(user_id)
                    if user is None or not user.is_muted:
                        continue
                    if ScoringService.is_currently_muted(user, now):
                        continue
                    user.is_muted = False
                    user.mute_expires_at = None
                    user_repo.commit()
                    expired += 1
                except Exception:
                    user_repo.rollback()
                    raise

        if expired:
            logger.info(f"Expired {expired} mute(s)")
        return expired

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _grant(
        db: Session,
        user: ModeratedUser,
        rule: PunishmentRule,
        reason: str,
        now: datetime,
    ) -> Punishment:
        """Set the status flag for ``rule`` and append its audit row."""
        expires_at = None
        if rule.punishment_type == PunishmentType.BAN:
            user.is_banned = True
        else:
            expires_at = minutes_from(now, rule.duration or 0)
            user.is_muted = True
            user.mute_expires_at = expires_at

        punishment = Punishment(
            user_id=user.id,
            punishment_type=rule.punishment_type,
            reason=reason,
            duration=rule.duration if rule.punishment_type == PunishmentType.MUTE else None,
            created_at=now,
            expires_at=expires_at,
        )
        PunishmentRepository(db).add(punishment)
        return punishment

    @staticmethod
    def _reconciled_total(db: Session, user: ModeratedUser, expected: int) -> int:
        """
        Check an incrementally computed total against the ledger.

        Returns the ledger sum, logging when the two disagree.
        """
        db.flush()
        actual = WarningRepository(db).sum_active_points(user.id)
        if actual != expected:
            logger.warning(
                f"Point drift for {user.id}: expected {expected}, ledger has {actual}",
                user_id=user.id,
            )
        return actual

    @staticmethod
    def _lift_unjustified(
        user: ModeratedUser, active_rules: Sequence[PunishmentRule], now: datetime
    ) -> list[PunishmentType]:
        """
        Clear a ban or mute the current total no longer reaches. Never grants.

        An expired mute flag is cleared without reporting a lift, since the
        platform timeout is already over.
        """
        should_ban, mute_rule = ScoringService.derive_status(
            user.total_points, active_rules
        )
        lifted = []
        if user.is_banned and not should_ban:
            user.is_banned = False
            lifted.append(PunishmentType.BAN)
        if user.is_muted and mute_rule is None:
            was_muted = ScoringService.is_currently_muted(user, now)
            user.is_muted = False
            user.mute_expires_at = None
            if was_muted:
                lifted.append(PunishmentType.MUTE)
        return lifted

    @staticmethod
    def _apply_derived_status(
        db: Session,
        user: ModeratedUser,
        active_rules: Sequence[PunishmentRule],
        now: datetime,
    ) -> StatusChange:
        """Make ban and mute flags match what the total justifies."""
        change = StatusChange()
        should_ban, mute_rule = ScoringService.derive_status(
            user.total_points, active_rules
        )

        if should_ban and not user.is_banned:
            ban_rule = next(
                r
                for r in ScoringService.order_rules(active_rules)
                if r.punishment_type == PunishmentType.BAN
                and r.point_threshold <= user.total_points
            )
            change.granted.append(
                ScoringService._grant(db, user, ban_rule, RECALCULATED_REASON, now)
            )
        elif not should_ban and user.is_banned:
            user.is_banned = False
            change.lifted.append(PunishmentType.BAN)

        was_muted = ScoringService.is_currently_muted(user, now)
        if mute_rule is not None:
            # a refreshed expiry must reach the platform too
            change.granted.append(
                ScoringService._grant(db, user, mute_rule, RECALCULATED_REASON, now)
            )
        elif user.is_muted:
            user.is_muted = False
            user.mute_expires_at = None
            if was_muted:
                change.lifted.append(PunishmentType.MUTE)

        return change

    @staticmethod
    def _execute_apply(
        executor: PunishmentExecutor, user_id: str, punishment: Punishment
    ) -> ExecutionResult:
        try:
            result = executor.apply(
                user_id, punishment.punishment_type, punishment.duration, punishment.reason
            )
        except Exception as e:
            logger.exception(f"Punishment executor raised for {user_id}")
            result = ExecutionResult(success=False, error=str(e))

        if result.success:
            audit_log.info(
                f"Applied {punishment.punishment_type.value} to {user_id}",
                event="punishment_executed",
                user_id=user_id,
                punishment_id=punishment.id,
            )
        else:
            logger.error(
                f"Failed to apply {punishment.punishment_type.value} to {user_id}: "
                f"{result.error}",
                user_id=user_id,
                punishment_id=punishment.id,
            )
        return result

    @staticmethod
    def _execute_lifts(
        executor: PunishmentExecutor, user_id: str, lifted: Sequence[PunishmentType]
    ) -> list[ExecutionResult]:
        results = []
        for punishment_type in lifted:
            try:
                result = executor.lift(user_id, punishment_type)
            except Exception as e:
                logger.exception(f"Punishment executor raised lifting for {user_id}")
                result = ExecutionResult(success=False, error=str(e))
            if not result.success:
                logger.error(
                    f"Failed to lift {punishment_type.value} for {user_id}: {result.error}",
                    user_id=user_id,
                )
            results.append(result)
        return results

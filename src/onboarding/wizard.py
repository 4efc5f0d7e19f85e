"""
Onboarding Wizard State Machine.

Single source of truth for the step cursor and the accumulated form data.

Steps are linear: PROFILE -> PRICING -> CREDENTIALS -> SUBMIT. Advancing
requires the gate result for the current step (validate-then-advance is
enforced here, not left to the screens). Going back is always allowed.

Nothing here raises to the caller: a failed gate or an out-of-range request
is reported through StepTransition and leaves the state untouched.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .persistence import PersistenceError, StateStore
from .state import (
    FIRST_STEP,
    LAST_STEP,
    TOTAL_STEPS,
    FormData,
    WizardState,
    WizardStep,
    utc_now_iso,
)
from .tiers import validate_tiers
from .validation import SEBI_FORMAT_MESSAGE, is_valid_sebi_number, step_errors

logger = logging.getLogger(__name__)


class TransitionOutcome(Enum):
    ADVANCED = "advanced"
    RETREATED = "retreated"
    REJECTED_INVALID = "rejected_invalid"
    AT_BOUNDARY = "at_boundary"


@dataclass(frozen=True)
class StepValidation:
    """Gate result for one step, as evaluated against the current form data."""
    step: int
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def is_valid(self) -> bool:
        return not self.errors


@dataclass(frozen=True)
class StepTransition:
    """Result of a navigation request."""
    outcome: TransitionOutcome
    step: WizardStep
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def moved(self) -> bool:
        return self.outcome in (TransitionOutcome.ADVANCED, TransitionOutcome.RETREATED)


class OnboardingWizard:
    """
    Owns one user's WizardState.

    The store is injected; state is rehydrated from it on construction and
    written back after every mutation.
    """

    def __init__(self, store: StateStore):
        self.store = store
        loaded = store.load()
        if loaded is not None:
            logger.info(
                f"Resuming onboarding for {store.user_id} at step {int(loaded.current_step)} "
                f"(last saved {loaded.timestamp})"
            )
        self._state = loaded or WizardState()

    # -------------------------------------------------------------------------
    # Read access
    # -------------------------------------------------------------------------

    @property
    def state(self) -> WizardState:
        return self._state

    @property
    def current_step(self) -> WizardStep:
        return self._state.current_step

    @property
    def form_data(self) -> FormData:
        return self._state.form_data

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def update_form_data(self, partial: dict[str, Any] | None = None, **fields: Any) -> None:
        """Shallow-merge fields into the form data. No validation."""
        changes = {**(partial or {}), **fields}
        merged, ignored = self._state.form_data.merge(changes)
        if ignored:
            logger.info(f"Ignoring unknown onboarding fields: {ignored}")
        self._state.form_data = merged
        self._persist()

    def reset_onboarding(self) -> None:
        """Back to empty defaults at step 1; erase the persisted copy."""
        self._state = WizardState()
        try:
            self.store.clear()
        except PersistenceError as e:
            logger.error(str(e))

    # -------------------------------------------------------------------------
    # Gates
    # -------------------------------------------------------------------------

    def validate_step(self, step: int | None = None) -> StepValidation:
        step = int(self.current_step if step is None else step)
        return StepValidation(step=step, errors=step_errors(self.form_data, step))

    def is_step_valid(self, step: int) -> bool:
        return self.validate_step(step).is_valid

    def exit_errors(self, step: int) -> dict[str, str]:
        """
        Errors that keep a jump from passing over `step`.

        Stricter than the step gate: pricing needs fully valid tiers and the
        SEBI number must match the registration format, as the step screens
        require on submit.
        """
        errors = step_errors(self.form_data, step)
        if step == WizardStep.PRICING and not errors:
            errors = validate_tiers(self.form_data.pricing_tiers)
        elif step == WizardStep.CREDENTIALS and "sebi_number" not in errors:
            if not is_valid_sebi_number(self.form_data.sebi_number):
                errors["sebi_number"] = SEBI_FORMAT_MESSAGE
        return errors

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def next_step(self, validation: StepValidation) -> StepTransition:
        """
        Advance one step if `validation` is a passing gate for the current step.

        A validation computed for another step is rejected as stale.
        """
        current = self.current_step
        if validation.step != current:
            logger.warning(
                f"Rejected advance from step {int(current)}: gate was evaluated for step {validation.step}"
            )
            return StepTransition(
                TransitionOutcome.REJECTED_INVALID,
                current,
                {"step": "Validation does not match the current step"},
            )
        if not validation.is_valid:
            return StepTransition(TransitionOutcome.REJECTED_INVALID, current, dict(validation.errors))
        if current >= LAST_STEP:
            return StepTransition(TransitionOutcome.AT_BOUNDARY, current)
        return self._move_to(WizardStep(current + 1))

    def advance(self) -> StepTransition:
        """Validate the current step and advance on success."""
        return self.next_step(self.validate_step())

    def prev_step(self) -> StepTransition:
        """Go back one step; never validated."""
        if self.current_step <= FIRST_STEP:
            return StepTransition(TransitionOutcome.AT_BOUNDARY, self.current_step)
        return self._move_to(WizardStep(self.current_step - 1))

    def go_to_step(self, step: int) -> StepTransition:
        """
        Jump to an absolute step.

        Out-of-range requests are ignored. Forward jumps must clear the exit
        checks of every step being left behind.
        """
        if not FIRST_STEP <= step <= LAST_STEP:
            return StepTransition(TransitionOutcome.AT_BOUNDARY, self.current_step)
        target = WizardStep(step)
        if target == self.current_step:
            return StepTransition(TransitionOutcome.AT_BOUNDARY, target)
        for skipped in range(self.current_step, target):
            errors = self.exit_errors(skipped)
            if errors:
                logger.info(f"Rejected jump to step {step}: step {skipped} is incomplete")
                return StepTransition(TransitionOutcome.REJECTED_INVALID, self.current_step, errors)
        return self._move_to(target)

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    def progress(self) -> dict:
        """Progress indicator data (uses the weak gates only)."""
        current = int(self.current_step)
        return {
            "step": current,
            "total": TOTAL_STEPS,
            "percent": round(current / TOTAL_STEPS * 100),
            "completed_steps": list(range(FIRST_STEP, current)),
            "steps_valid": {int(s): self.is_step_valid(s) for s in WizardStep},
        }

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _move_to(self, step: WizardStep) -> StepTransition:
        outcome = (
            TransitionOutcome.ADVANCED if step > self.current_step else TransitionOutcome.RETREATED
        )
        self._state.current_step = step
        self._persist()
        return StepTransition(outcome, step)

    def _persist(self) -> None:
        self._state.timestamp = utc_now_iso()
        try:
            self.store.save(self._state)
        except PersistenceError as e:
            # In-memory state stays authoritative; at most this edit is lost on crash
            logger.error(str(e))

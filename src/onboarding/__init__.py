"""
Analyst Onboarding.

Four-step wizard that turns a newly registered analyst into a submitted
application:

1. Profile - display name, bio, specializations, languages, experience, photo
2. Pricing - 1 to 5 subscription tiers with weekly/monthly/yearly prices
3. Credentials - SEBI registration number and certificate upload
4. Submit - the composed application is sent once, then local state is erased

Progress is persisted after every change so the flow can be resumed later.
"""

from .state import FormData, Tier, WizardState, WizardStep
from .wizard import OnboardingWizard, StepTransition, StepValidation, TransitionOutcome
from .flow import OnboardingFlow

__all__ = [
    "FormData",
    "Tier",
    "WizardState",
    "WizardStep",
    "OnboardingWizard",
    "StepTransition",
    "StepValidation",
    "TransitionOutcome",
    "OnboardingFlow",
]

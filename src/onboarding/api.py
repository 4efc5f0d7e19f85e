"""
Onboarding API Endpoints.

HTTP surface for the analyst onboarding wizard. Each request rebuilds the
user's OnboardingFlow from the configured state store, so the persisted
record is the only state carried between requests.
"""

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import APIRouter, Depends, File, Header, HTTPException, UploadFile
from pydantic import BaseModel, Field

from marketplace.config import get_settings
from marketplace.services.analysts import AnalystService
from marketplace.services.http import ApiClient, APIError
from marketplace.services.identity import IdentityService, UserProfile

from .flow import OnboardingFlow
from .forms import get_form_options
from .persistence import create_state_store
from .screens import FIX_ERRORS_MESSAGE, StepOutcome
from .state import WizardStep
from .submission import SubmissionStatus
from .tiers import format_monthly_equivalent
from .uploads import UploadFile as PickedFile
from .wizard import StepTransition

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/onboarding", tags=["onboarding"])

# Only changed through their own endpoints, which enforce the tier limits and upload checks
NON_DRAFT_FIELDS = ("pricing_tiers", "profile_photo_url", "sebi_certificate_url")


# =============================================================================
# Auth
# =============================================================================

@dataclass
class AuthenticatedUser:
    """Analyst resolved through the identity service."""
    profile: UserProfile
    access_token: str
    identity: IdentityService


async def get_current_user(authorization: str = Header(None)) -> AuthenticatedUser:
    """
    Resolve the bearer token with the identity service.

    Expects: Authorization: Bearer <access_token>
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing or invalid authorization header")

    token = authorization.removeprefix("Bearer ")
    identity = IdentityService(ApiClient(access_token=token))

    try:
        profile = await identity.get_current_user()
    except APIError as e:
        logger.error(f"Auth error: {e.message}")
        raise HTTPException(status_code=401, detail="Authentication failed")

    if profile.user_type != "analyst":
        raise HTTPException(status_code=403, detail="Onboarding is only available to analysts")

    return AuthenticatedUser(profile=profile, access_token=token, identity=identity)


def get_flow(user: AuthenticatedUser = Depends(get_current_user)) -> OnboardingFlow:
    """Build the user's onboarding flow on top of the configured store."""
    store = create_state_store(user.profile.id, get_settings())
    analysts = AnalystService(ApiClient(access_token=user.access_token))
    return OnboardingFlow(store, analysts, user.identity)


# =============================================================================
# Request/Response Models
# =============================================================================

class ProfileRequest(BaseModel):
    """Step 1: profile fields. Omitted fields keep their saved value."""
    display_name: str | None = None
    bio: str | None = None
    specializations: list[str] | None = None
    languages: list[str] | None = None
    years_of_experience: int | str | None = None
    allow_free_audience: bool | None = None


class TierUpdateRequest(BaseModel):
    """Tier fields to change. Prices are kept as entered."""
    name: str | None = None
    weeklyPrice: float | str | None = None
    monthlyPrice: float | str | None = None
    yearlyPrice: float | str | None = None


class FeatureRequest(BaseModel):
    text: str = ""


class CredentialsRequest(BaseModel):
    """Step 3: registration numbers."""
    sebi_number: str = ""
    ria_number: str = ""


class StateResponse(BaseModel):
    """Current onboarding state."""
    current_step: int
    progress: dict
    form_data: dict
    monthly_equivalents: dict[str, str] = Field(default_factory=dict)
    notices: list[dict] = Field(default_factory=list)
    submission: dict | None = None


# =============================================================================
# Helpers
# =============================================================================

def state_response(flow: OnboardingFlow) -> StateResponse:
    submission = None
    if flow.submission.status != SubmissionStatus.IDLE:
        submission = {
            "status": flow.submission.status.value,
            "error": flow.submission.error_message,
            "can_retry": flow.submission.can_retry,
            "summary": flow.submission.summary,
        }
    return StateResponse(
        current_step=int(flow.wizard.current_step),
        progress=flow.wizard.progress(),
        form_data=flow.wizard.form_data.to_dict(),
        monthly_equivalents={
            t.id: format_monthly_equivalent(t) for t in flow.wizard.form_data.pricing_tiers
        },
        notices=[{"level": n.level, "message": n.message} for n in flow.notifier.drain()],
        submission=submission,
    )


def raise_rejected(flow: OnboardingFlow, errors: dict[str, str], status_code: int = 400) -> None:
    last = flow.notifier.last
    message = last.message if last else FIX_ERRORS_MESSAGE
    raise HTTPException(status_code=status_code, detail={"message": message, "errors": errors})


def check_outcome(flow: OnboardingFlow, outcome: StepOutcome) -> StateResponse:
    if not outcome.success:
        raise_rejected(flow, outcome.errors)
    return state_response(flow)


def check_transition(flow: OnboardingFlow, transition: StepTransition) -> StateResponse:
    if transition.errors:
        raise_rejected(flow, transition.errors)
    return state_response(flow)


def require_tier(flow: OnboardingFlow, tier_id: str) -> None:
    if flow.pricing.editor.get_tier(tier_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown tier: {tier_id}")


async def read_upload(upload: UploadFile) -> PickedFile:
    return PickedFile(
        filename=upload.filename or "upload",
        content=await upload.read(),
        content_type=upload.content_type or "application/octet-stream",
    )


# =============================================================================
# Endpoints: State Management
# =============================================================================

@router.get("/options")
async def get_onboarding_options():
    """Selection options and limits for rendering the forms."""
    return get_form_options()


@router.get("/state", response_model=StateResponse)
async def get_onboarding_state(flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    """Get current onboarding progress (resumes a saved session)."""
    return state_response(flow)


@router.patch("/form", response_model=StateResponse)
async def update_form(partial: dict[str, Any], flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    """Save a draft: merge fields into the form data without validating."""
    locked = [key for key in NON_DRAFT_FIELDS if key in partial]
    if locked:
        raise HTTPException(status_code=400, detail=f"Cannot save as draft: {', '.join(locked)}")
    try:
        flow.wizard.update_form_data(partial)
    except (TypeError, ValueError, AttributeError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid form data: {e}")
    return state_response(flow)


@router.post("/prev", response_model=StateResponse)
async def previous_step(flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    flow.wizard.prev_step()
    return state_response(flow)


@router.post("/goto/{step}", response_model=StateResponse)
async def go_to_step(step: int, flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    """Jump to a step. Out-of-range steps are ignored; forward jumps are gated."""
    return check_transition(flow, await flow.go_to_step(step))


@router.delete("", response_model=StateResponse)
async def abandon_onboarding(flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    """Discard all onboarding progress."""
    flow.wizard.reset_onboarding()
    return state_response(flow)


# =============================================================================
# Endpoints: Step 1 - Profile
# =============================================================================

@router.post("/profile", response_model=StateResponse)
async def submit_profile(request: ProfileRequest, flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    outcome = await flow.profile.submit(**request.model_dump(exclude_none=True))
    return check_outcome(flow, outcome)


@router.post("/profile/photo", response_model=StateResponse)
async def upload_profile_photo(
    photo: UploadFile = File(...),
    flow: OnboardingFlow = Depends(get_flow),
) -> StateResponse:
    if not await flow.profile.upload_photo(await read_upload(photo)):
        raise_rejected(flow, {"profile_photo": flow.notifier.last.message})
    return state_response(flow)


# =============================================================================
# Endpoints: Step 2 - Pricing
# =============================================================================

@router.post("/pricing/open", response_model=StateResponse)
async def open_pricing(flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    """Seed the first tier when the pricing step is shown for the first time."""
    flow.pricing.open()
    return state_response(flow)


@router.post("/pricing/tiers", response_model=StateResponse)
async def add_tier(flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    if flow.pricing.editor.add_tier() is None:
        raise_rejected(flow, {"tiers": flow.notifier.last.message})
    return state_response(flow)


@router.patch("/pricing/tiers/{tier_id}", response_model=StateResponse)
async def update_tier(
    tier_id: str,
    request: TierUpdateRequest,
    flow: OnboardingFlow = Depends(get_flow),
) -> StateResponse:
    require_tier(flow, tier_id)
    for field_name, value in request.model_dump(exclude_unset=True).items():
        flow.pricing.editor.update_tier_field(tier_id, field_name, value)
    return state_response(flow)


@router.post("/pricing/tiers/{tier_id}/toggle", response_model=StateResponse)
async def toggle_tier(tier_id: str, flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    require_tier(flow, tier_id)
    flow.pricing.editor.toggle_tier_active(tier_id)
    return state_response(flow)


@router.delete("/pricing/tiers/{tier_id}", response_model=StateResponse)
async def remove_tier(tier_id: str, flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    require_tier(flow, tier_id)
    if not flow.pricing.editor.remove_tier(tier_id):
        raise_rejected(flow, {"tiers": flow.notifier.last.message})
    return state_response(flow)


@router.post("/pricing/tiers/{tier_id}/features", response_model=StateResponse)
async def add_feature(tier_id: str, flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    require_tier(flow, tier_id)
    flow.pricing.editor.add_feature(tier_id)
    return state_response(flow)


@router.put("/pricing/tiers/{tier_id}/features/{index}", response_model=StateResponse)
async def update_feature(
    tier_id: str,
    index: int,
    request: FeatureRequest,
    flow: OnboardingFlow = Depends(get_flow),
) -> StateResponse:
    require_tier(flow, tier_id)
    if not flow.pricing.editor.update_feature(tier_id, index, request.text):
        raise HTTPException(status_code=404, detail=f"Unknown feature index: {index}")
    return state_response(flow)


@router.delete("/pricing/tiers/{tier_id}/features/{index}", response_model=StateResponse)
async def remove_feature(tier_id: str, index: int, flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    require_tier(flow, tier_id)
    flow.pricing.editor.remove_feature(tier_id, index)
    return state_response(flow)


@router.post("/pricing", response_model=StateResponse)
async def submit_pricing(flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    return check_outcome(flow, flow.pricing.submit())


# =============================================================================
# Endpoints: Step 3 - SEBI credentials, Step 4 - Submission
# =============================================================================

@router.post("/credentials/certificate", response_model=StateResponse)
async def upload_certificate(
    certificate: UploadFile = File(...),
    flow: OnboardingFlow = Depends(get_flow),
) -> StateResponse:
    if not await flow.credentials.upload_certificate(await read_upload(certificate)):
        raise_rejected(flow, {"sebi_certificate_url": flow.notifier.last.message})
    return state_response(flow)


@router.post("/credentials", response_model=StateResponse)
async def submit_credentials(
    request: CredentialsRequest,
    flow: OnboardingFlow = Depends(get_flow),
) -> StateResponse:
    """Finish step 3; the application is submitted as soon as step 4 is reached."""
    outcome = await flow.submit_credentials(request.sebi_number, request.ria_number)
    return check_outcome(flow, outcome)


@router.post("/submit", response_model=StateResponse)
async def submit_application(flow: OnboardingFlow = Depends(get_flow)) -> StateResponse:
    """Submit (or retry submitting) a session sitting on the final step."""
    if flow.wizard.current_step != WizardStep.SUBMIT:
        raise HTTPException(status_code=400, detail="Complete the previous steps first")

    status = await flow.enter_submit_step()
    if status == SubmissionStatus.FAILED:
        raise HTTPException(
            status_code=502,
            detail={"message": flow.submission.error_message, "can_retry": True},
        )
    return state_response(flow)

"""
Normalization of raw `getCallerUserProfile` results.

The canister contract has shipped three response shapes over time:

- tagged results: ``{"__kind__": "ok", "ok": {...}}`` or
  ``{"__kind__": "err", "err": <error>}``
- a legacy nullable profile: ``None``
- a legacy plain profile object

Every raw result is converted exactly once, right after the remote call,
into a ProfileFetchOutcome. Nothing downstream inspects raw shapes.
"""

from typing import Any, Mapping

from pydantic import ValidationError

from luckycoins.core.logger.logger import get_logger
from luckycoins.core.service.auth.models.profile import ProfileFetchOutcome, UserProfile

logger = get_logger(__name__)

UNAUTHORIZED_MESSAGE = "Unauthorized access. Please log in again."
LOAD_FAILED_MESSAGE = "Failed to load profile. Please try again."

KIND_FIELD = "__kind__"
NOT_FOUND_TAGS = ("notFound", "#notFound")
NOT_FOUND_SENTINEL = 0
NOT_FOUND_MARKERS = ("not found", "notfound")


def is_not_found_error(err: Any) -> bool:
    """Match every historical encoding of the canister's notFound variant"""
    if isinstance(err, str):
        return err in NOT_FOUND_TAGS
    if isinstance(err, Mapping):
        return "notFound" in err
    # bool is an int subclass; False must not read as the numeric sentinel
    if isinstance(err, int) and not isinstance(err, bool):
        return err == NOT_FOUND_SENTINEL
    return False


def _profile_outcome(payload: Any) -> ProfileFetchOutcome:
    if isinstance(payload, UserProfile):
        return ProfileFetchOutcome.ready(payload)
    try:
        return ProfileFetchOutcome.ready(UserProfile.model_validate(payload))
    except ValidationError as e:
        logger.warning(
            "Profile payload failed validation",
            extra={"error_count": e.error_count()}
        )
        return ProfileFetchOutcome.failed(LOAD_FAILED_MESSAGE)


def normalize_profile_response(raw: Any) -> ProfileFetchOutcome:
    """Convert a raw profile response of any known shape into one outcome"""
    if raw is None:
        return ProfileFetchOutcome.setup_required()

    if isinstance(raw, Mapping) and KIND_FIELD in raw:
        kind = raw[KIND_FIELD]
        if kind == "ok":
            return _profile_outcome(raw.get("ok"))
        if kind == "err":
            err = raw.get("err")
            if is_not_found_error(err):
                return ProfileFetchOutcome.setup_required()
            logger.info("Profile fetch rejected by backend", extra={"backend_error": str(err)})
            return ProfileFetchOutcome.unauthorized(UNAUTHORIZED_MESSAGE)

        logger.warning("Unknown profile result tag", extra={"kind": str(kind)})
        return ProfileFetchOutcome.failed(LOAD_FAILED_MESSAGE)

    return _profile_outcome(raw)


def classify_profile_exception(exc: BaseException) -> ProfileFetchOutcome:
    """Map a thrown fetch failure to setup-required or a generic load failure"""
    text = str(exc).lower()
    if any(marker in text for marker in NOT_FOUND_MARKERS):
        return ProfileFetchOutcome.setup_required()
    return ProfileFetchOutcome.failed(LOAD_FAILED_MESSAGE)

"""
Error taxonomy for SafeRoute.

Typed failures surfaced to callers. Validation failures carry a stable
``code`` so transports can map them without string matching.
"""

from typing import Optional


class SafeRouteError(Exception):
    """SafeRoute 최상위 예외"""

    code = "error"


class InvalidInput(SafeRouteError):
    """경계에서 거부되는 잘못된 입력 (좌표 범위 등)"""

    code = "invalid_input"


class MalformedRoute(SafeRouteError):
    """폴리라인 디코딩 실패 (geo 커널 내부에서 복구됨)"""

    code = "malformed_route"


class HazardValidationError(SafeRouteError):
    """투표 검증 실패의 기반 클래스"""

    code = "validation_error"

    def __init__(self, message: str, *, hazard_id: Optional[str] = None):
        super().__init__(message)
        self.hazard_id = hazard_id


class TooFar(HazardValidationError):
    code = "too_far"

    def __init__(self, distance_m: float, limit_m: float, *, hazard_id: Optional[str] = None):
        super().__init__(
            f"voter is {distance_m:.0f}m from hazard (limit {limit_m:.0f}m)",
            hazard_id=hazard_id,
        )
        self.distance_m = distance_m
        self.limit_m = limit_m


class NotAuthorized(HazardValidationError):
    code = "not_authorized"


class AlreadyVoted(HazardValidationError):
    code = "already_voted"


class AlreadyTerminal(HazardValidationError):
    code = "already_terminal"


class InvalidAction(HazardValidationError):
    code = "invalid_action"


class HazardNotFound(SafeRouteError):
    code = "not_found"


class DuplicateHazard(SafeRouteError):
    """같은 유형의 위험이 이미 근처에 보고됨"""

    code = "duplicate_hazard"

    def __init__(self, existing_id: str, distance_m: float):
        super().__init__(f"similar hazard {existing_id} already reported {distance_m:.0f}m away")
        self.existing_id = existing_id
        self.distance_m = distance_m


class VoteConflict(SafeRouteError):
    """투표 원장의 (hazard, user) 유일성 위반"""

    code = "vote_conflict"


class DependencyUnavailable(SafeRouteError):
    """외부 저장소/원장/전송 계층 장애"""

    code = "dependency_unavailable"

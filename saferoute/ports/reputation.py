"""
Reputation signal port interface.

This module defines the protocol for the external reputation collaborator.
"""

from typing import Literal, Protocol

ActivityKind = Literal["hazard_reported", "hazard_validated"]

class ReputationPort(Protocol):
    """평판 신호 포트 인터페이스 (best-effort)"""
    
    async def notify_activity(self, user_id: str, activity_kind: ActivityKind) -> None:
        """
        사용자 활동을 알립니다.
        
        Args:
            user_id: 사용자 ID
            activity_kind: 활동 종류
        """
        ...

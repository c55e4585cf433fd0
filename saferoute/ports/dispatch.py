"""
Alert dispatch port interface.

This module defines the protocol for broadcasting emitted alerts.
"""

from typing import List, Protocol
from saferoute.core.models import AlertRecord

class AlertDispatchPort(Protocol):
    """경보 발송 포트 인터페이스"""
    
    async def publish_alerts(self, user_id: str, alerts: List[AlertRecord]) -> None:
        """
        경보를 발송합니다.
        
        Args:
            user_id: 대상 사용자
            alerts: 발송할 경보 목록
        """
        ...

"""
Hazard store port interface.

This module defines the protocol for the geospatial hazard store.
"""

from typing import Iterable, List, Protocol
from saferoute.core.models import Coordinate, Hazard

class HazardStorePort(Protocol):
    """위험 저장소 포트 인터페이스"""
    
    async def find_near(self, center: Coordinate, radius_m: float, statuses: Iterable[str]) -> List[Hazard]:
        """
        반경 안의 위험을 상태 필터와 함께 조회합니다 (순서 보장 없음).
        
        Args:
            center: 검색 중심
            radius_m: 검색 반경 (미터)
            statuses: 포함할 상태 목록
            
        Returns:
            위험 목록
        """
        ...
    
    async def load(self, hazard_id: str) -> Hazard:
        """
        위험을 조회합니다.
        
        Raises:
            HazardNotFound: 위험이 없을 때
        """
        ...
    
    async def save(self, hazard: Hazard) -> None:
        """갱신된 위험을 저장합니다."""
        ...
    
    async def create(self, hazard: Hazard) -> None:
        """새 위험을 저장합니다."""
        ...

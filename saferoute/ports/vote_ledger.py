"""
Vote ledger port interface.

This module defines the protocol for the append-only vote ledger.
"""

from typing import List, Protocol
from saferoute.core.models import Vote

class VoteLedgerPort(Protocol):
    """투표 원장 포트 인터페이스"""
    
    async def has_voted(self, hazard_id: str, user_id: str) -> bool:
        """사용자가 해당 위험에 투표했는지 확인합니다."""
        ...
    
    async def record_vote(self, vote: Vote) -> None:
        """
        투표를 기록합니다.
        
        Raises:
            VoteConflict: (hazard_id, user_id) 유일성 위반
        """
        ...
    
    async def discard_vote(self, hazard_id: str, user_id: str) -> None:
        """위험 저장 실패 시 기록한 투표를 되돌립니다."""
        ...
    
    async def list_votes(self, hazard_id: str) -> List[Vote]:
        """위험의 투표 이력을 최신순으로 반환합니다."""
        ...

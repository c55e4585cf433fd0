"""
Reputation service client for SafeRoute.

This module provides a best-effort client that reports user activity
(reports, validations) to the external gamification service.
"""

import asyncio
import aiohttp
from typing import Optional

from saferoute.common.retry import retry_with_backoff
from saferoute.observability.logging_setup import get_logger
from saferoute.ports.reputation import ActivityKind

log = get_logger("saferoute.reputation")

class HttpReputationNotifier:
    """평판 서비스 HTTP 클라이언트"""

    def __init__(self,
                 base_url: str,
                 token: str = "",
                 timeout: int = 5,
                 max_retries: int = 2):
        """
        초기화합니다.

        Args:
            base_url: 평판 서비스 기본 URL
            token: 서비스 토큰
            timeout: 요청 타임아웃 (초)
            max_retries: 최대 재시도 횟수
        """
        self.base_url = base_url.rstrip('/')
        self.token = token
        self.timeout = timeout
        self.max_retries = max_retries
        self.session: Optional[aiohttp.ClientSession] = None

        log.info("평판 서비스 클라이언트 초기화됨")

    async def __aenter__(self):
        """비동기 컨텍스트 매니저 진입"""
        await self.open()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """비동기 컨텍스트 매니저 종료"""
        await self.close()

    async def open(self) -> None:
        if self.session is None or self.session.closed:
            headers = {"Content-Type": "application/json"}
            if self.token:
                headers["Authorization"] = f"Bearer {self.token}"
            self.session = aiohttp.ClientSession(
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )

    async def close(self) -> None:
        if self.session:
            await self.session.close()
            self.session = None

    async def notify_activity(self, user_id: str, activity_kind: ActivityKind) -> None:
        """
        사용자 활동을 평판 서비스에 알립니다.

        실패는 로그만 남기고 호출자에게 전파하지 않습니다.

        Args:
            user_id: 사용자 ID
            activity_kind: 활동 종류
        """
        if self.session is None:
            await self.open()

        url = f"{self.base_url}/api/activity"
        payload = {"user_id": user_id, "activity": activity_kind}

        async def _request():
            async with self.session.post(url, json=payload) as response:
                response.raise_for_status()

        try:
            await retry_with_backoff(
                _request,
                max_retries=self.max_retries,
                retry_on=(aiohttp.ClientError, asyncio.TimeoutError)
            )
            log.debug("평판 활동 전송됨", user_id=user_id, activity=activity_kind)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.warning("평판 활동 전송 실패", user_id=user_id, activity=activity_kind, error=str(e))

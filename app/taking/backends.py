"""
Taking Backends

Collaborators the attempt engine talks to. Two implementations:
- ServiceTakingBackend: in-process, straight onto the services
- HttpTakingBackend: over the REST API with httpx

Both resolve demo quiz ids from the built-in catalogue and report failures
as TakingBackendError carrying an HTTP-style status code.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import List, Optional, Type, TypeVar
from uuid import UUID

import httpx
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.data.demo_quizzes import get_demo_quiz, is_demo_quiz_id
from app.schemas.attempt import QuizAttemptResponse, ResponseSubmission, ResponsesSavedResponse
from app.schemas.quiz import QuizDetailResponse
from app.services.attempt_service import AttemptService, AttemptError
from app.services.quiz_service import (
    QuizService,
    QuizNotFoundError,
    QuizForbiddenError,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class TakingBackendError(Exception):
    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationRequiredError(TakingBackendError):
    """The caller must re-authenticate before continuing."""

    def __init__(self, message: str = "Authentication required"):
        super().__init__(message, status_code=401)


class TakingBackend(ABC):

    async def fetch_quiz(self, quiz_id: str) -> QuizDetailResponse:
        if is_demo_quiz_id(quiz_id):
            quiz = get_demo_quiz(quiz_id)
            if quiz is None:
                raise TakingBackendError("Quiz not found", status_code=404)
            return quiz
        return await self._fetch_quiz(quiz_id)

    @abstractmethod
    async def _fetch_quiz(self, quiz_id: str) -> QuizDetailResponse:
        ...

    @abstractmethod
    async def create_attempt(self, quiz_id: str) -> QuizAttemptResponse:
        ...

    @abstractmethod
    async def save_responses(self, attempt_id: UUID, responses: List[ResponseSubmission]) -> int:
        ...

    @abstractmethod
    async def complete_attempt(
        self,
        quiz_id: str,
        attempt_id: UUID,
        score: int,
        completed_at: datetime,
    ) -> QuizAttemptResponse:
        ...


# ============================================================
# IN-PROCESS BACKEND
# ============================================================

class ServiceTakingBackend(TakingBackend):
    """Runs the taking flow against the services with one session."""

    def __init__(self, db: AsyncSession, user_id: UUID):
        self.user_id = user_id
        self.quiz_service = QuizService(db)
        self.attempt_service = AttemptService(db)

    async def _fetch_quiz(self, quiz_id: str) -> QuizDetailResponse:
        try:
            quiz_uuid = UUID(str(quiz_id))
        except ValueError:
            raise TakingBackendError("Invalid quiz ID", status_code=400)

        try:
            quiz = await self.quiz_service.get_quiz(quiz_uuid, self.user_id)
        except Exception as e:
            raise _to_backend_error(e) from e
        if quiz is None:
            raise TakingBackendError("Quiz not found", status_code=404)
        return quiz

    async def create_attempt(self, quiz_id: str) -> QuizAttemptResponse:
        try:
            return await self.attempt_service.create_attempt(quiz_id, self.user_id)
        except Exception as e:
            raise _to_backend_error(e) from e

    async def save_responses(self, attempt_id: UUID, responses: List[ResponseSubmission]) -> int:
        try:
            saved = await self.attempt_service.save_responses(attempt_id, self.user_id, responses)
        except Exception as e:
            raise _to_backend_error(e) from e
        return saved.count

    async def complete_attempt(
        self,
        quiz_id: str,
        attempt_id: UUID,
        score: int,
        completed_at: datetime,
    ) -> QuizAttemptResponse:
        try:
            return await self.attempt_service.complete_attempt(
                UUID(str(quiz_id)), attempt_id, self.user_id, score, completed_at
            )
        except Exception as e:
            raise _to_backend_error(e) from e


def _to_backend_error(error: Exception) -> TakingBackendError:
    if isinstance(error, QuizNotFoundError):
        return TakingBackendError(str(error), status_code=404)
    if isinstance(error, QuizForbiddenError):
        return TakingBackendError(str(error), status_code=403)
    if isinstance(error, AttemptError):
        return TakingBackendError(error.message, status_code=error.status_code)
    logger.exception("Unexpected error in taking backend")
    return TakingBackendError("Something went wrong. Please try again.", status_code=500)


# ============================================================
# HTTP BACKEND
# ============================================================

class HttpTakingBackend(TakingBackend):
    """Runs the taking flow against the REST API."""

    def __init__(
        self,
        base_url: str,
        access_token: str,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.access_token = access_token
        self.timeout = timeout
        self.transport = transport

    async def _fetch_quiz(self, quiz_id: str) -> QuizDetailResponse:
        return await self._request("GET", f"/quizzes/{quiz_id}", QuizDetailResponse)

    async def create_attempt(self, quiz_id: str) -> QuizAttemptResponse:
        return await self._request("POST", f"/quizzes/{quiz_id}/attempts", QuizAttemptResponse)

    async def save_responses(self, attempt_id: UUID, responses: List[ResponseSubmission]) -> int:
        payload = {"responses": [r.model_dump(mode="json") for r in responses]}
        saved = await self._request(
            "POST", f"/attempts/{attempt_id}/responses", ResponsesSavedResponse, json=payload
        )
        return saved.count

    async def complete_attempt(
        self,
        quiz_id: str,
        attempt_id: UUID,
        score: int,
        completed_at: datetime,
    ) -> QuizAttemptResponse:
        payload = {
            "status": "completed",
            "score": score,
            "completed_at": completed_at.isoformat(),
        }
        return await self._request(
            "PUT", f"/quizzes/{quiz_id}/attempts/{attempt_id}", QuizAttemptResponse, json=payload
        )

    async def _request(
        self,
        method: str,
        path: str,
        schema: Type[ModelT],
        json: Optional[dict] = None,
    ) -> ModelT:
        url = f"{settings.API_V1_PREFIX}{path}"
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
                headers={"Authorization": f"Bearer {self.access_token}"},
            ) as client:
                response = await client.request(method, url, json=json)
        except httpx.TimeoutException:
            raise TakingBackendError("The request timed out. Please try again.", status_code=504)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise TakingBackendError("Could not reach the server. Please try again.", status_code=503)

        if response.status_code == 401:
            raise AuthenticationRequiredError()
        if response.is_error:
            raise TakingBackendError(_error_message(response), status_code=response.status_code)

        # A 2xx with an unreadable body (e.g. a proxy error page) is a bad gateway
        try:
            return schema.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error(f"{method} {url} returned an unexpected body: {e}")
            raise TakingBackendError("The server returned an unexpected response.", status_code=502)


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Request failed with status {response.status_code}"

    detail = body.get("detail") if isinstance(body, dict) else None
    if isinstance(detail, str):
        return detail
    if isinstance(detail, dict) and "message" in detail:
        return detail["message"]
    return f"Request failed with status {response.status_code}"

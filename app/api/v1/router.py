from fastapi import APIRouter
from app.api.v1.endpoints import ai, attempts, quizzes

# ============================================================
# Main API v1 Router
# ============================================================

api_router = APIRouter()

# AI routes first: /quizzes/ai/generate must win over /quizzes/{quiz_id}/...
api_router.include_router(
    ai.router,
    prefix=""  # Routes define their own prefixes (/quizzes/ai, /user)
)

api_router.include_router(
    quizzes.router,
    prefix=""  # Routes define their own prefixes (/quizzes, /quizzes/{id})
)

api_router.include_router(
    attempts.router,
    prefix=""  # Routes define their own prefixes (/quizzes/{id}/attempts, /attempts/{id})
)

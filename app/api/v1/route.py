import asyncio
from typing import Optional

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from slowapi import Limiter
from slowapi.util import get_remote_address

import app.config.config as configs
from app.model.chat.chat_request import ChatRequest, FeedbackRequest, RequestContext, SessionRequest
from app.model.chat.chat_response import (
    ChatResponse,
    HistoryResponse,
    PopularQuestionsResponse,
    SessionResponse,
    SessionsResponse,
)
from app.model.chat.message import Feedback, StoredMessage
from app.model.user.user_profile import UserProfile
from app.service.chat.chat import new_session_id
from app.service.chat.history import popular_questions
from app.service.identity.identity import bearer_token
from app.service.language.languages import (
    all_enabled_languages,
    default_language_for_region,
    get_fallback_language,
    get_language_info,
    is_language_supported,
    languages_for_region,
)
from app.service.services import ChatServices, get_services

api_router = APIRouter()

limiter = Limiter(key_func=get_remote_address)
# One request budget per client, shared by every /chat route.
chat_limit = limiter.shared_limit(configs.CHAT_RATE_LIMIT, scope="chat")


def current_user(
    authorization: Optional[str] = Header(default=None),
    services: ChatServices = Depends(get_services),
) -> Optional[UserProfile]:
    token = bearer_token(authorization)
    if token is None:
        return None
    return services.identity.resolve(token)


def required_user(user: Optional[UserProfile] = Depends(current_user)) -> UserProfile:
    if user is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    return user


def _request_context(context: Optional[RequestContext], language: Optional[str]) -> RequestContext:
    context = context or RequestContext()
    if language:
        context = context.model_copy(update={"language": language})
    return context


@api_router.post("/chat/message", response_model=ChatResponse)
@chat_limit
async def send_message(
    request: Request,
    req: ChatRequest,
    user: Optional[UserProfile] = Depends(current_user),
    services: ChatServices = Depends(get_services),
):
    session_id = req.session_id or new_session_id()
    request_context = _request_context(req.context, req.language)
    orchestrator = services.orchestrator
    handler = orchestrator.process_voice_turn if req.is_voice else orchestrator.process_text_turn

    # A client disconnect must not leave a user message without its answer.
    task = asyncio.create_task(handler(session_id, req.message, user, request_context))
    result = await asyncio.shield(task)

    return ChatResponse(
        session_id=session_id,
        user_message=result.user_message,
        bot_message=result.bot_message,
        context=result.context,
        is_voice=req.is_voice,
    )


@api_router.get("/chat/history/{session_id}", response_model=HistoryResponse)
@chat_limit
def chat_history(
    request: Request,
    session_id: str,
    limit: Optional[int] = Query(default=None, ge=1, le=500),
    services: ChatServices = Depends(get_services),
):
    messages = services.history.get_history(session_id, limit)
    return HistoryResponse(session_id=session_id, messages=messages, count=len(messages))


@api_router.put("/chat/feedback/{message_id}", response_model=StoredMessage)
@chat_limit
def update_feedback(
    request: Request,
    message_id: str,
    req: FeedbackRequest,
    services: ChatServices = Depends(get_services),
):
    return services.history.submit_feedback(message_id, Feedback(**req.model_dump()))


@api_router.get("/chat/popular-questions", response_model=PopularQuestionsResponse)
@chat_limit
def chat_popular_questions(request: Request, language: Optional[str] = None):
    code, questions = popular_questions(language)
    return PopularQuestionsResponse(language=code, questions=questions)


@api_router.post("/chat/session", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
@chat_limit
async def create_session(
    request: Request,
    req: Optional[SessionRequest] = None,
    user: Optional[UserProfile] = Depends(current_user),
    services: ChatServices = Depends(get_services),
):
    req = req or SessionRequest()
    request_context = _request_context(req.context, None)
    task = asyncio.create_task(services.orchestrator.start_session(req.initial_message, user, request_context))
    session_id, result = await asyncio.shield(task)
    if result is None:
        return SessionResponse(session_id=session_id)
    return SessionResponse(session_id=session_id, user_message=result.user_message, bot_message=result.bot_message)


@api_router.get("/chat/sessions", response_model=SessionsResponse)
@chat_limit
def chat_sessions(
    request: Request,
    user: UserProfile = Depends(required_user),
    services: ChatServices = Depends(get_services),
):
    return SessionsResponse(sessions=services.history.sessions_for_user(user.id))


@api_router.get("/languages")
def languages():
    enabled = all_enabled_languages()
    return {"languages": enabled, "count": len(enabled), "default": configs.DEFAULT_LANGUAGE}


@api_router.get("/languages/region/{state}")
def region_languages(state: str):
    codes = languages_for_region(state)
    return {
        "state": state,
        "languages": {code: get_language_info(code) for code in codes},
        "supported_codes": codes,
        "default_language": default_language_for_region(state),
    }


@api_router.get("/languages/validate/{code}")
def validate_language(code: str):
    supported = is_language_supported(code)
    fallback = get_fallback_language(code)
    return {
        "language_code": code,
        "is_supported": supported,
        "language_info": get_language_info(code) if supported else None,
        "fallback": fallback,
        "recommendation": code if supported else fallback,
    }

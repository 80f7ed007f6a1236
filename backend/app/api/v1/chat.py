"""Chat endpoint forwarding user requests to the table agent."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from app.api import deps
from app.api.errors import error_response
from app.core.logging import get_logger
from app.models.chat import ChatRequest, ChatResponse, ErrorResponse
from app.services import agent
from app.services.errors import UnknownToolError

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/chat",
    response_model=ChatResponse,
    status_code=status.HTTP_200_OK,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Send a request to the dynamic table agent.",
)
async def chat(
    request: ChatRequest,
    context: agent.AgentContext = Depends(deps.get_agent_context),
):
    """Run the agent loop for one user message."""

    try:
        validated = deps.validate_chat(request)
    except ValueError as exc:
        return error_response(status.HTTP_400_BAD_REQUEST, str(exc))

    try:
        output = await agent.run_agent(validated.user_input, context=context)
    except UnknownToolError as exc:
        return error_response(status.HTTP_400_BAD_REQUEST, str(exc))
    except Exception as exc:
        logger.exception("chat.agent.failed", exc_info=exc)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))

    return ChatResponse(output=output)

"""Session endpoints.

GET /v1/sessions/{token}             - who is behind a token (404 if evicted)
PUT /v1/sessions/{token}             - refresh a token, optionally recording a view
PUT /v1/sessions/{token}/cart/{item} - set a cart line quantity

Routers are thin: call services for business logic.
"""

from fastapi import APIRouter, Depends, HTTPException, Path

from feedcache.routes.deps import get_session_registry
from feedcache.schemas import CartLineRequest, SessionResponse, SessionUpdateRequest
from feedcache.services.keys import ItemRef, SessionToken, UserRef
from feedcache.services.sessions import SessionRegistry

router = APIRouter()

TOKEN = Path(min_length=8, max_length=128, pattern=r"^[a-zA-Z0-9_-]+$")


async def _session_response(sessions: SessionRegistry, token: SessionToken, user: str) -> SessionResponse:
    return SessionResponse(
        token=token,
        user=user,
        viewed=await sessions.viewed_items(token),
        cart=await sessions.cart(token),
    )


@router.get("/{token}", response_model=SessionResponse)
async def get_session(
    token: str = TOKEN,
    sessions: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    user = await sessions.check_token(SessionToken(token))
    if user is None:
        raise HTTPException(
            status_code=404,
            detail={
                "error": {
                    "code": "SESSION_NOT_FOUND",
                    "message": "Unknown or expired session",
                    "detail": None,
                }
            },
        )
    return await _session_response(sessions, SessionToken(token), user)


@router.put("/{token}", response_model=SessionResponse)
async def update_session(
    body: SessionUpdateRequest,
    token: str = TOKEN,
    sessions: SessionRegistry = Depends(get_session_registry),
) -> SessionResponse:
    item = ItemRef(body.item) if body.item else None
    await sessions.update_token(SessionToken(token), UserRef(body.user), item)
    return await _session_response(sessions, SessionToken(token), body.user)


@router.put("/{token}/cart/{item}", status_code=204)
async def set_cart_line(
    body: CartLineRequest,
    token: str = TOKEN,
    item: str = Path(min_length=1, max_length=200),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> None:
    await sessions.add_to_cart(SessionToken(token), ItemRef(item), body.count)

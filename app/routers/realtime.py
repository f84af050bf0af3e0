"""
Websocket pushing plan changes to connected clients
"""
import asyncio
import logging
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, WebSocket, WebSocketDisconnect, status
from app.database import SessionLocal
from app.dependencies.auth import authenticate_token
from app.dependencies.entitlements import get_notifier
from app.services.plan_notifier import PlanStateNotifier
from app.services.plan_resolver import PlanResolver, PlanState, ResolutionFailed

logger = logging.getLogger(__name__)
router = APIRouter()


async def _forward(websocket: WebSocket, queue: asyncio.Queue):
    while True:
        payload = await queue.get()
        await websocket.send_json({"type": "plan_changed", **payload})


async def _drain(websocket: WebSocket):
    # Incoming messages are ignored; receiving detects the disconnect
    while True:
        await websocket.receive_text()


async def pump(websocket: WebSocket, queue: asyncio.Queue, user_id) -> None:
    """
    Forwards plan changes until the client disconnects or a send fails.
    Whichever side stops first ends the session.
    """
    tasks = {
        asyncio.create_task(_forward(websocket, queue)),
        asyncio.create_task(_drain(websocket)),
    }
    done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    for task in pending:
        task.cancel()

    results = await asyncio.gather(*done, *pending, return_exceptions=True)
    for result in results:
        if isinstance(result, WebSocketDisconnect):
            logger.debug(f"Plan websocket closed for user {user_id}")
        elif isinstance(result, Exception):
            logger.error(f"Plan websocket failed for user {user_id}: {result}", exc_info=result)


@router.websocket("/ws/plan")
async def plan_updates(
    websocket: WebSocket,
    token: Optional[str] = Query(None),
    notifier: PlanStateNotifier = Depends(get_notifier)
):
    """
    Sends the current plan on connect, then every change to it.
    Clients should refetch quotas on each message; the server never trusts it.
    """
    # Sessions are short-lived; no connection is held while the socket sits idle
    with SessionLocal() as db:
        try:
            user_id = await authenticate_token(db, token)
        except HTTPException:
            await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
            return

    await websocket.accept()

    # Subscribe before reading so a change in between is not lost
    queue = notifier.subscribe(user_id)
    try:
        current: Optional[PlanState] = None
        with SessionLocal() as db:
            try:
                current = PlanResolver(db).resolve(user_id)
            except ResolutionFailed as e:
                logger.error(f"Could not send initial plan state to user {user_id}: {e}")

        if current is not None:
            await websocket.send_json({"type": "plan_state", **current.to_payload()})
        await pump(websocket, queue, user_id)
    except WebSocketDisconnect:
        logger.debug(f"Plan websocket closed for user {user_id}")
    finally:
        notifier.unsubscribe(user_id, queue)

"""
dsa_mentor/realtime/connection_manager.py
Per-account groups of live relay connections

Single-process, in-memory. Every outbound frame goes through the socket's
own bounded queue and sender task, so a slow or dead socket never blocks
delivery to the rest of its group, and frames to one socket keep their order.
"""
import asyncio
import json
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """
    Tracks live sockets per account.

    State:
    - connections: {account_id: {websocket: metadata}}
    - message_queues / sender_tasks: one of each per websocket
    """

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self.connections: Dict[int, Dict[WebSocket, Dict[str, Any]]] = {}
        self.message_queues: Dict[WebSocket, asyncio.Queue] = {}
        self.sender_tasks: Dict[WebSocket, asyncio.Task] = {}

    async def connect(self, websocket: WebSocket, account_id: int) -> None:
        """Accept the socket and join the account's group."""
        await websocket.accept()

        self.connections.setdefault(account_id, {})[websocket] = {
            "account_id": account_id,
            "connected_at": datetime.utcnow(),
        }
        self.message_queues[websocket] = asyncio.Queue(maxsize=self.max_queue_size)
        self.sender_tasks[websocket] = asyncio.create_task(self._message_sender(websocket, account_id))

        logger.info(
            f"Relay connected: account={account_id}, "
            f"connections={self.get_connection_count(account_id)}"
        )

    def _leave_group(self, websocket: WebSocket, account_id: int) -> None:
        group = self.connections.get(account_id)
        if group is not None:
            group.pop(websocket, None)
            if not group:
                del self.connections[account_id]
        self.message_queues.pop(websocket, None)

    async def disconnect(self, websocket: WebSocket, account_id: int) -> None:
        self._leave_group(websocket, account_id)
        task = self.sender_tasks.pop(websocket, None)
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                logger.debug(f"Sender task cancelled for account {account_id}")

        logger.info(
            f"Relay disconnected: account={account_id}, "
            f"connections={self.get_connection_count(account_id)}"
        )

    def _enqueue(self, websocket: WebSocket, serialized: str) -> None:
        queue = self.message_queues.get(websocket)
        if queue is None:
            return
        try:
            queue.put_nowait(serialized)
        except asyncio.QueueFull:
            # Backpressure: drop oldest message
            queue.get_nowait()
            queue.put_nowait(serialized)
            logger.warning("Relay queue full, dropped oldest frame")

    def send_personal(self, websocket: WebSocket, message: Dict[str, Any]) -> None:
        self._enqueue(websocket, json.dumps(message, sort_keys=True))

    def broadcast(
        self,
        account_id: int,
        message: Dict[str, Any],
        exclude: Optional[WebSocket] = None
    ) -> int:
        """
        Queue `message` for every live socket of `account_id` except `exclude`.

        Returns:
            Number of sockets the frame was queued for
        """
        group = self.connections.get(account_id)
        if not group:
            return 0

        serialized = json.dumps(message, sort_keys=True)
        delivered = 0
        for websocket in list(group.keys()):
            if websocket is exclude:
                continue
            self._enqueue(websocket, serialized)
            delivered += 1
        return delivered

    async def _message_sender(self, websocket: WebSocket, account_id: int) -> None:
        queue = self.message_queues.get(websocket)
        if queue is None:
            return

        while True:
            message = await queue.get()
            try:
                await websocket.send_text(message)
            except Exception as e:
                # Connection broken
                logger.warning(
                    f"Relay send failed, dropping socket: account={account_id}, "
                    f"{type(e).__name__}: {e}"
                )
                self._leave_group(websocket, account_id)
                self.sender_tasks.pop(websocket, None)
                break

    def get_connection_count(self, account_id: Optional[int] = None) -> int:
        if account_id is not None:
            return len(self.connections.get(account_id, {}))
        return sum(len(group) for group in self.connections.values())


# Global connection manager instance
_connection_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    """Get the process-wide manager, creating it on first use."""
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager


def set_connection_manager(manager: Optional[ConnectionManager]) -> None:
    global _connection_manager
    _connection_manager = manager

# app/core/websocket_manager.py

from fastapi import WebSocket
from typing import Dict, List, Tuple
import logging

logger = logging.getLogger(__name__)

# 連線管理器：維護 'room_id' -> List[Tuple[user_id, WebSocket]] 的映射
class ConnectionManager:
    """管理聊天室的 WebSocket 連線：訊息寫入資料庫後廣播給同一 Room 的所有連線。"""

    def __init__(self):
        # 結構: {room_id: [(user_id, WebSocket)]}
        self.active_connections: Dict[str, List[Tuple[str, WebSocket]]] = {}

    async def connect(self, room_id: str, user_id: str, websocket: WebSocket):
        await websocket.accept()
        self.active_connections.setdefault(room_id, []).append((user_id, websocket))
        logger.info(f"User {user_id} connected to Room {room_id}. Total connections: {len(self.active_connections[room_id])}")

    def disconnect(self, room_id: str, user_id: str, websocket: WebSocket):
        connections = self.active_connections.get(room_id)
        if not connections or (user_id, websocket) not in connections:
            return # 可能是重複斷開
        connections.remove((user_id, websocket))
        if not connections:
            del self.active_connections[room_id]
        logger.info(f"User {user_id} disconnected from Room {room_id}.")

    async def broadcast_message(self, room_id: str, message_json: str):
        """將 JSON 字串訊息廣播給特定 Room 的所有連線，送不出去的連線直接移除。"""
        disconnected_clients = []
        for user_id, ws in list(self.active_connections.get(room_id, [])):
            try:
                await ws.send_text(message_json)
            except Exception as e:
                logger.warning(f"Failed to send message to client {user_id} in room {room_id}: {e}")
                disconnected_clients.append((user_id, ws))
        for user_id, ws in disconnected_clients:
            self.disconnect(room_id, user_id, ws)

# 實例化管理器 (全域單例)
manager = ConnectionManager()

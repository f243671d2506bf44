import json

import pytest

from app.core.exceptions import Forbidden, Invalid, NotFound
from app.core.websocket_manager import ConnectionManager
from app.models.notification import NotificationTypeEnum
from app.models.user import UserRoleEnum
from app.repositories.notification_repo import NotificationRepository
from app.services.message_service import MessageService


class FakeWebSocket:
    def __init__(self, fail=False):
        self.accepted = False
        self.sent = []
        self.fail = fail

    async def accept(self):
        self.accepted = True

    async def send_text(self, text):
        if self.fail:
            raise RuntimeError("connection closed")
        self.sent.append(text)


@pytest.fixture
def connections():
    return ConnectionManager()


@pytest.fixture
def chat(db, notifier, connections):
    return MessageService(db, notification_service=notifier, connection_manager=connections)


@pytest.fixture
def room_setup(db, make_user, make_request, chat):
    async def _room_setup():
        client = await make_user(UserRoleEnum.client, name="Client")
        developer = await make_user(UserRoleEnum.developer, name="Dev")
        request = await make_request(client)
        room = await chat.create_or_get_room(request.request_id, developer.user_id, developer)
        return client, developer, request, room
    return _room_setup


async def test_create_or_get_room_is_idempotent(room_setup, chat):
    client, developer, request, room = await room_setup()

    again = await chat.create_or_get_room(request.request_id, developer.user_id, client)

    assert again.room_id == room.room_id
    assert room.client_id == client.user_id
    assert room.developer_id == developer.user_id


async def test_room_creation_permissions(make_user, make_request, chat):
    client = await make_user()
    developer = await make_user(UserRoleEnum.developer)
    stranger = await make_user(UserRoleEnum.developer)
    request = await make_request(client)

    with pytest.raises(Forbidden):
        await chat.create_or_get_room(request.request_id, developer.user_id, stranger)
    with pytest.raises(Invalid):
        await chat.create_or_get_room(request.request_id, client.user_id, client)
    with pytest.raises(NotFound):
        await chat.create_or_get_room("00000000-0000-0000-0000-000000000000", developer.user_id, developer)


async def test_send_message_notifies_and_broadcasts(db, room_setup, chat, connections):
    client, developer, request, room = await room_setup()
    socket = FakeWebSocket()
    await connections.connect(room.room_id, client.user_id, socket)

    message = await chat.send_message(room.room_id, developer, "  Hello, I can start on Monday.  ")

    assert message.content == "Hello, I can start on Monday."
    assert message.sender.display_name == "Dev"

    payload = json.loads(socket.sent[0])
    assert payload["message_id"] == message.message_id
    assert payload["sender"]["display_name"] == "Dev"

    notifications = await NotificationRepository(db).list_notifications_by_user(client.user_id)
    assert [n.type for n in notifications] == [NotificationTypeEnum.new_message]
    assert notifications[0].link_url == f"/chat/{room.room_id}"


async def test_broadcast_drops_dead_connections(room_setup, chat, connections):
    client, developer, request, room = await room_setup()
    dead = FakeWebSocket(fail=True)
    await connections.connect(room.room_id, client.user_id, dead)

    await chat.send_message(room.room_id, developer, "ping")

    assert room.room_id not in connections.active_connections


async def test_empty_message_is_invalid(room_setup, chat):
    _, developer, _, room = await room_setup()
    with pytest.raises(Invalid):
        await chat.send_message(room.room_id, developer, "   ")


async def test_outsider_cannot_read_or_write(make_user, room_setup, chat):
    _, _, _, room = await room_setup()
    outsider = await make_user()

    with pytest.raises(Forbidden):
        await chat.send_message(room.room_id, outsider, "hi")
    with pytest.raises(Forbidden):
        await chat.get_room_messages(room.room_id, outsider)
    assert await chat.check_user_room_permission(room.room_id, outsider) is False


async def test_reading_messages_marks_them_read(room_setup, chat):
    client, developer, _, room = await room_setup()
    await chat.send_message(room.room_id, developer, "first")
    await chat.send_message(room.room_id, developer, "second")
    await chat.send_message(room.room_id, client, "reply")

    assert await chat.get_unread_count(client) == 2
    assert await chat.get_unread_count(developer) == 1

    history = await chat.get_room_messages(room.room_id, client)

    assert [m.content for m in history] == ["first", "second", "reply"]
    assert await chat.get_unread_count(client) == 0
    assert await chat.get_unread_count(developer) == 1


async def test_rooms_are_ordered_by_latest_message(make_request, room_setup, chat):
    client, developer, _, first_room = await room_setup()
    second_request = await make_request(client, title="Second request")
    second_room = await chat.create_or_get_room(second_request.request_id, developer.user_id, developer)

    await chat.send_message(first_room.room_id, client, "newest")

    rooms = await chat.get_user_rooms(developer)
    assert [r.room_id for r in rooms] == [first_room.room_id, second_room.room_id]


async def test_handle_websocket_message(room_setup, chat):
    _, developer, _, room = await room_setup()

    message = await chat.handle_websocket_message(room.room_id, developer, json.dumps({"content": "via ws"}))
    assert message.content == "via ws"

    with pytest.raises(Invalid):
        await chat.handle_websocket_message(room.room_id, developer, "not json")
    with pytest.raises(Invalid):
        await chat.handle_websocket_message(room.room_id, developer, json.dumps({"text": "wrong key"}))

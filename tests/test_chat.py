from datetime import datetime, timedelta, timezone
from uuid import uuid4

from app.models.chat import Conversation, ConversationMember, Message, MessageMention
from app.models.notification import Notification
from app.models.user import User
from app.services.chat import conversation_link, is_unread
from conftest import FakeResult, entity_handler, make_user, sequence_handler

T0 = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


def _conversation(**overrides) -> Conversation:
    defaults = dict(
        id=uuid4(),
        company_id="default",
        name=None,
        is_group=False,
        created_at=T0,
        updated_at=T0,
    )
    defaults.update(overrides)
    return Conversation(**defaults)


def _member(conversation, user, **overrides) -> ConversationMember:
    defaults = dict(
        id=uuid4(),
        conversation_id=conversation.id,
        user_id=user.id,
        last_read_at=None,
        joined_at=T0,
    )
    defaults.update(overrides)
    return ConversationMember(**defaults)


def _message(conversation, sender, content="Morning!", created_at=T0) -> Message:
    return Message(
        id=uuid4(),
        conversation_id=conversation.id,
        sender_id=sender.id,
        content=content,
        created_at=created_at,
    )


def test_unread_only_when_someone_else_wrote_after_last_read(admin_user, agent_user):
    conversation = _conversation()
    member = _member(conversation, admin_user, last_read_at=T0)

    assert is_unread(None, member, admin_user.id) is False
    assert is_unread(_message(conversation, agent_user, created_at=T0 + timedelta(minutes=1)), member, admin_user.id)
    assert not is_unread(_message(conversation, agent_user, created_at=T0 - timedelta(minutes=1)), member, admin_user.id)
    assert not is_unread(_message(conversation, admin_user, created_at=T0 + timedelta(minutes=1)), member, admin_user.id)
    assert is_unread(_message(conversation, agent_user), _member(conversation, admin_user), admin_user.id)


def test_list_chat_users(client, fake_db, admin_user, agent_user):
    fake_db.on_execute_return(FakeResult(items=[admin_user, agent_user]))

    resp = client.get("/api/v1/chat/users")

    assert resp.status_code == 200
    names = [user["first_name"] for user in resp.json()["data"]]
    assert names == ["Ada", "Alan"]
    assert "hashed_password" not in resp.json()["data"][0]


def test_list_conversations_with_last_message_and_unread(client, fake_db, admin_user, agent_user):
    conversation = _conversation()
    membership = _member(conversation, admin_user, last_read_at=T0)
    last = _message(conversation, agent_user, content="Call me", created_at=T0 + timedelta(hours=1))
    fake_db.on_execute(
        sequence_handler(
            [
                FakeResult(rows=[(conversation, membership)]),
                FakeResult(rows=[(conversation.id, admin_user), (conversation.id, agent_user)]),
                FakeResult(items=[last]),
            ]
        )
    )

    resp = client.get("/api/v1/chat/conversations")

    assert resp.status_code == 200
    [item] = resp.json()["data"]
    assert item["hasUnread"] is True
    assert item["isGroup"] is False
    assert item["lastMessage"]["content"] == "Call me"
    assert item["lastMessage"]["sender"]["first_name"] == "Alan"
    assert len(item["members"]) == 2


def test_list_conversations_empty(client, fake_db):
    resp = client.get("/api/v1/chat/conversations")

    assert resp.status_code == 200
    assert resp.json()["data"] == []
    assert len(fake_db.executed) == 1


def test_open_direct_conversation(client, fake_db, admin_user, agent_user, relay_events):
    fake_db.on_execute(entity_handler(User, FakeResult(items=[agent_user])))

    resp = client.post("/api/v1/chat/conversations", json={"userIds": [str(agent_user.id)]})

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["isGroup"] is False
    assert data["name"] is None
    [conversation] = fake_db.added_of(Conversation)
    members = fake_db.added_of(ConversationMember)
    assert {member.user_id for member in members} == {admin_user.id, agent_user.id}
    assert all(member.conversation_id == conversation.id for member in members)
    assert fake_db.commits == 1
    assert sorted(user_id for user_id, event, _ in relay_events if event == "new-conversation") == sorted(
        [str(admin_user.id), str(agent_user.id)]
    )


def test_existing_direct_conversation_is_reused(client, fake_db, agent_user, relay_events):
    existing = _conversation()
    fake_db.on_execute(entity_handler(User, FakeResult(items=[agent_user])))
    fake_db.on_execute(entity_handler(Conversation, FakeResult(items=[existing])))

    resp = client.post("/api/v1/chat/conversations", json={"userIds": [str(agent_user.id)]})

    assert resp.status_code == 200
    assert resp.json()["data"]["id"] == str(existing.id)
    assert fake_db.added == []
    assert fake_db.commits == 0
    assert relay_events == []


def test_group_conversation_keeps_its_name(client, fake_db, admin_user):
    colleagues = [make_user(), make_user()]
    fake_db.on_execute(entity_handler(User, FakeResult(items=colleagues)))

    resp = client.post(
        "/api/v1/chat/conversations",
        json={"userIds": [str(user.id) for user in colleagues], "name": " Underwriting "},
    )

    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["isGroup"] is True
    assert data["name"] == "Underwriting"
    assert len(fake_db.added_of(ConversationMember)) == 3


def test_conversation_needs_another_user(client, fake_db, admin_user):
    resp = client.post("/api/v1/chat/conversations", json={"userIds": [str(admin_user.id)]})

    assert resp.status_code == 400
    assert resp.json()["code"] == "users_required"
    assert fake_db.executed == []


def test_conversation_rejects_users_outside_the_company(client, fake_db):
    stranger = uuid4()

    resp = client.post("/api/v1/chat/conversations", json={"userIds": [str(stranger)]})

    assert resp.status_code == 400
    body = resp.json()
    assert body["code"] == "invalid_members"
    assert body["details"]["userIds"] == [str(stranger)]
    assert fake_db.added == []


def test_list_messages_marks_conversation_read(client, fake_db, admin_user, agent_user):
    conversation = _conversation()
    membership = _member(conversation, admin_user)
    older = _message(conversation, agent_user, content="first", created_at=T0)
    newer = _message(conversation, admin_user, content="second", created_at=T0 + timedelta(minutes=5))
    mention = MessageMention(id=uuid4(), message_id=newer.id, user_id=agent_user.id)
    fake_db.on_execute(
        sequence_handler(
            [
                FakeResult(rows=[(conversation, membership)]),
                FakeResult(items=[newer, older]),
                FakeResult(items=[admin_user, agent_user]),
                FakeResult(items=[mention]),
            ]
        )
    )

    resp = client.get("/api/v1/chat/messages", params={"conversationId": str(conversation.id)})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert [message["content"] for message in data] == ["first", "second"]
    assert data[1]["mentionedUserIds"] == [str(agent_user.id)]
    assert data[0]["sender"]["first_name"] == "Alan"
    assert membership.last_read_at is not None
    assert fake_db.commits == 1


def test_non_member_cannot_read_messages(client, fake_db):
    resp = client.get("/api/v1/chat/messages", params={"conversationId": str(uuid4())})

    assert resp.status_code == 403
    assert resp.json()["code"] == "not_a_member"
    assert fake_db.commits == 0


def test_send_message_with_mention(client, fake_db, admin_user, agent_user, relay_events):
    conversation = _conversation(is_group=True, name="Team")
    membership = _member(conversation, admin_user)
    outsider = uuid4()
    fake_db.on_execute(
        sequence_handler(
            [
                FakeResult(rows=[(conversation, membership)]),
                FakeResult(items=[admin_user.id, agent_user.id]),
            ]
        )
    )
    content = "Can you call Jane back? " + "x" * 120

    resp = client.post(
        "/api/v1/chat/messages",
        json={
            "conversationId": str(conversation.id),
            "content": f"  {content}  ",
            "mentionedUserIds": [str(agent_user.id), str(outsider), str(admin_user.id)],
        },
    )

    assert resp.status_code == 201
    assert resp.json()["data"]["mentionedUserIds"] == [str(agent_user.id)]
    [message] = fake_db.added_of(Message)
    assert message.content == content
    assert conversation.updated_at == message.created_at
    assert membership.last_read_at == message.created_at

    [mention] = fake_db.added_of(MessageMention)
    assert mention.user_id == agent_user.id
    [notification] = fake_db.added_of(Notification)
    assert notification.user_id == agent_user.id
    assert notification.type == "MENTION"
    assert notification.title == "Ada Admin mentioned you"
    assert notification.message == content[:100]
    assert notification.link == conversation_link(conversation.id)
    assert fake_db.commits == 1

    delivered = [(user_id, event) for user_id, event, _ in relay_events]
    assert (str(admin_user.id), "new-message") in delivered
    assert (str(agent_user.id), "new-message") in delivered
    assert (str(agent_user.id), "notification") in delivered
    assert (str(admin_user.id), "notification") not in delivered


def test_blank_message_is_rejected(client, fake_db):
    resp = client.post(
        "/api/v1/chat/messages",
        json={"conversationId": str(uuid4()), "content": "   "},
    )

    assert resp.status_code == 400
    assert resp.json()["code"] == "content_required"
    assert fake_db.executed == []


def test_mark_read_clears_mention_notifications(client, fake_db, admin_user):
    conversation = _conversation()
    membership = _member(conversation, admin_user)
    pending = Notification(
        id=uuid4(),
        company_id="default",
        user_id=admin_user.id,
        type="MENTION",
        title="Alan Agent mentioned you",
        message="ping",
        link=conversation_link(conversation.id),
        read=False,
    )
    fake_db.on_execute(
        sequence_handler(
            [
                FakeResult(rows=[(conversation, membership)]),
                FakeResult(items=[pending]),
            ]
        )
    )

    resp = client.patch("/api/v1/chat/read", json={"conversationId": str(conversation.id)})

    assert resp.status_code == 200
    assert resp.json()["data"] == {"success": True, "notificationsRead": 1}
    assert pending.read is True
    assert membership.last_read_at is not None
    assert fake_db.commits == 1


def test_typing_goes_to_the_other_members(client, fake_db, admin_user, agent_user, relay_events):
    conversation = _conversation()
    fake_db.on_execute(
        sequence_handler(
            [
                FakeResult(rows=[(conversation, _member(conversation, admin_user))]),
                FakeResult(items=[admin_user.id, agent_user.id]),
            ]
        )
    )

    resp = client.post(
        "/api/v1/chat/typing",
        json={"conversationId": str(conversation.id), "isTyping": True},
    )

    assert resp.status_code == 200
    [(user_id, event, payload)] = relay_events
    assert user_id == str(agent_user.id)
    assert event == "typing"
    assert payload["userName"] == "Ada Admin"
    assert payload["isTyping"] is True
    assert fake_db.commits == 0

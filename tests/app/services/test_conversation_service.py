"""Tests for ConversationService."""

from unittest.mock import patch
from uuid import uuid4

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.principal import Principal
from app.config import get_settings
from app.constants.helpdesk import ConversationStatus
from app.core.protocol import is_valid_protocol
from app.db import SessionLocal
from app.exceptions import (
    ConflictError,
    ForbiddenError,
    InvalidStateError,
    NotFoundError,
)
from app.models.conversation import Conversation
from app.models.message import Message
from app.realtime.gateway import conversation_room
from app.schemas.conversation import ConversationCreate
from app.services.conversation_service import ConversationService
from tests.fixtures.conversation_fixtures import make_conversation, make_message


def as_principal(user) -> Principal:
    return Principal.from_user(user)


def test_create_conversation(db: Session, dispatcher, setup_client_user):
    service = ConversationService(db, dispatcher=dispatcher)
    conversation = service.create_conversation(
        as_principal(setup_client_user), ConversationCreate()
    )
    assert conversation.id is not None
    assert is_valid_protocol(conversation.protocol)
    assert conversation.status == ConversationStatus.PENDING
    assert conversation.client_id == setup_client_user.id
    assert conversation.attendant_id is None
    assert dispatcher.names == ["conversation.created"]
    payload = dispatcher.payloads("conversation.created")[0]
    assert payload["protocol"] == conversation.protocol
    assert payload["status"] == "pending"


def test_create_conversation_protocols_are_unique(db: Session, setup_client_user):
    service = ConversationService(db)
    principal = as_principal(setup_client_user)
    protocols = {
        service.create_conversation(principal, ConversationCreate()).protocol
        for _ in range(10)
    }
    assert len(protocols) == 10


def test_create_conversation_with_initial_message(db: Session, setup_client_user):
    service = ConversationService(db)
    conversation = service.create_conversation(
        as_principal(setup_client_user),
        ConversationCreate(initial_message="My order never arrived"),
    )
    messages = db.query(Message).filter(Message.conversation_id == conversation.id).all()
    assert len(messages) == 1
    assert messages[0].content == "My order never arrived"
    assert messages[0].sender_id == setup_client_user.id


def test_create_conversation_blank_initial_message_is_skipped(
    db: Session, setup_client_user
):
    service = ConversationService(db)
    conversation = service.create_conversation(
        as_principal(setup_client_user), ConversationCreate(initial_message="   ")
    )
    assert (
        db.query(Message).filter(Message.conversation_id == conversation.id).count()
        == 0
    )


def test_create_conversation_with_channel(db: Session, setup_client_user, setup_channel):
    service = ConversationService(db)
    conversation = service.create_conversation(
        as_principal(setup_client_user),
        ConversationCreate(channel_id=setup_channel.id),
    )
    assert conversation.channel_id == setup_channel.id


def test_create_conversation_unknown_channel(db: Session, setup_client_user):
    service = ConversationService(db)
    with pytest.raises(NotFoundError):
        service.create_conversation(
            as_principal(setup_client_user), ConversationCreate(channel_id=uuid4())
        )


@pytest.mark.parametrize("user_fixture", ["setup_attendant", "setup_admin"])
def test_only_clients_create(db: Session, dispatcher, request, user_fixture):
    user = request.getfixturevalue(user_fixture)
    service = ConversationService(db, dispatcher=dispatcher)
    with pytest.raises(ForbiddenError):
        service.create_conversation(as_principal(user), ConversationCreate())
    assert db.query(Conversation).count() == 0
    assert dispatcher.events == []


def test_create_conversation_redraws_taken_protocol(
    db: Session, setup_client_user, setup_conversation
):
    service = ConversationService(db)
    with patch(
        "app.services.conversation_service.generate_protocol",
        side_effect=[setup_conversation.protocol, "ABCDEF0123456"],
    ) as generator:
        conversation = service.create_conversation(
            as_principal(setup_client_user), ConversationCreate()
        )
    assert conversation.protocol == "ABCDEF0123456"
    assert generator.call_count == 2


def test_create_conversation_retries_on_insert_collision(
    db: Session, setup_client_user, setup_conversation
):
    """A code taken between the existence check and the insert is redrawn."""
    service = ConversationService(db)
    taken = setup_conversation.protocol
    with patch.object(service, "protocol_exists", return_value=False), patch(
        "app.services.conversation_service.generate_protocol",
        side_effect=[taken, "0000000000001"],
    ):
        conversation = service.create_conversation(
            as_principal(setup_client_user),
            ConversationCreate(initial_message="hello"),
        )
    assert conversation.protocol == "0000000000001"
    assert db.query(Conversation).count() == 2
    assert db.query(Message).count() == 1


def test_create_conversation_does_not_retry_other_integrity_errors(
    db: Session, dispatcher, setup_client_user, setup_conversation
):
    service = ConversationService(db, dispatcher=dispatcher)
    error = IntegrityError(
        "INSERT INTO conversations",
        {},
        Exception("NOT NULL constraint failed: conversations.client_id"),
    )
    with patch.object(db, "commit", side_effect=error), patch(
        "app.services.conversation_service.generate_protocol",
        return_value="0000000000002",
    ) as generator:
        with pytest.raises(IntegrityError):
            service.create_conversation(
                as_principal(setup_client_user), ConversationCreate()
            )
    assert generator.call_count == 1
    assert db.query(Conversation).count() == 1
    assert dispatcher.events == []


def test_create_conversation_gives_up_after_max_attempts(
    db: Session, dispatcher, setup_client_user, setup_conversation
):
    service = ConversationService(db, dispatcher=dispatcher)
    with patch(
        "app.services.conversation_service.generate_protocol",
        return_value=setup_conversation.protocol,
    ) as generator:
        with pytest.raises(ConflictError):
            service.create_conversation(
                as_principal(setup_client_user), ConversationCreate()
            )
    assert generator.call_count == get_settings().protocol_max_attempts
    assert dispatcher.events == []


def test_assign_conversation(
    db: Session, dispatcher, gateway, connect, setup_conversation, setup_attendant
):
    client_connection = connect(setup_conversation.client)
    service = ConversationService(db, dispatcher=dispatcher, gateway=gateway)
    conversation = service.assign_conversation(
        as_principal(setup_attendant), setup_conversation.id
    )
    assert conversation.status == ConversationStatus.ACTIVE
    assert conversation.attendant_id == setup_attendant.id
    assert dispatcher.payloads("conversation.assigned") == [
        {"conversationId": conversation.id, "attendantId": setup_attendant.id}
    ]
    notices = client_connection.events("conversation:assigned")
    assert len(notices) == 1
    assert notices[0]["protocol"] == conversation.protocol
    assert notices[0]["attendant"]["id"] == setup_attendant.id


def test_admin_can_assign(db: Session, setup_conversation, setup_admin):
    service = ConversationService(db)
    conversation = service.assign_conversation(
        as_principal(setup_admin), setup_conversation.id
    )
    assert conversation.attendant_id == setup_admin.id


def test_client_cannot_assign(db: Session, setup_conversation, setup_client_user):
    service = ConversationService(db)
    with pytest.raises(ForbiddenError):
        service.assign_conversation(
            as_principal(setup_client_user), setup_conversation.id
        )


def test_assign_missing_conversation(db: Session, setup_attendant):
    service = ConversationService(db)
    with pytest.raises(NotFoundError):
        service.assign_conversation(as_principal(setup_attendant), uuid4())


@pytest.mark.parametrize(
    "conversation_fixture", ["setup_active_conversation", "setup_closed_conversation"]
)
def test_assign_non_pending_leaves_conversation_unchanged(
    db: Session,
    dispatcher,
    request,
    conversation_fixture,
    setup_attendant,
    setup_second_attendant,
):
    conversation = request.getfixturevalue(conversation_fixture)
    status_before = conversation.status
    service = ConversationService(db, dispatcher=dispatcher)
    with pytest.raises(InvalidStateError):
        service.assign_conversation(
            as_principal(setup_second_attendant), conversation.id
        )
    db.refresh(conversation)
    assert conversation.status == status_before
    assert conversation.attendant_id == setup_attendant.id
    assert dispatcher.events == []


def test_second_assign_is_rejected(
    db: Session, setup_conversation, setup_attendant, setup_second_attendant
):
    service = ConversationService(db)
    service.assign_conversation(as_principal(setup_attendant), setup_conversation.id)
    with pytest.raises(InvalidStateError):
        service.assign_conversation(
            as_principal(setup_second_attendant), setup_conversation.id
        )
    db.refresh(setup_conversation)
    assert setup_conversation.attendant_id == setup_attendant.id


def test_concurrent_assign_only_one_wins(
    db: Session, setup_conversation, setup_attendant, setup_second_attendant
):
    """
    The loser read the conversation as pending, but the winner commits first;
    the loser's conditional update then matches no row.
    """
    winner = as_principal(setup_attendant)
    loser = as_principal(setup_second_attendant)
    racing_db = SessionLocal()
    try:
        racing = ConversationService(racing_db)
        load = racing._get_or_404

        def load_then_lose_race(conversation_id):
            conversation = load(conversation_id)
            assert conversation.status == ConversationStatus.PENDING
            ConversationService(db).assign_conversation(winner, conversation_id)
            return conversation

        racing._get_or_404 = load_then_lose_race
        with pytest.raises(InvalidStateError):
            racing.assign_conversation(loser, setup_conversation.id)
    finally:
        racing_db.close()

    db.refresh(setup_conversation)
    assert setup_conversation.status == ConversationStatus.ACTIVE
    assert setup_conversation.attendant_id == winner.id


def test_close_conversation(
    db: Session, dispatcher, gateway, connect, setup_active_conversation, setup_attendant
):
    watcher = connect(setup_attendant)
    gateway.join(watcher, conversation_room(setup_active_conversation.id))
    service = ConversationService(db, dispatcher=dispatcher, gateway=gateway)
    conversation = service.close_conversation(
        as_principal(setup_active_conversation.client), setup_active_conversation.id
    )
    assert conversation.status == ConversationStatus.CLOSED
    assert dispatcher.names == ["conversation.closed"]
    assert len(watcher.events("conversation:closed")) == 1


def test_close_pending_conversation(db: Session, setup_conversation, setup_admin):
    service = ConversationService(db)
    conversation = service.close_conversation(
        as_principal(setup_admin), setup_conversation.id
    )
    assert conversation.status == ConversationStatus.CLOSED
    assert conversation.attendant_id is None


def test_close_is_idempotent(
    db: Session, dispatcher, setup_closed_conversation, setup_attendant
):
    updated_at = setup_closed_conversation.updated_at
    service = ConversationService(db, dispatcher=dispatcher)
    conversation = service.close_conversation(
        as_principal(setup_attendant), setup_closed_conversation.id
    )
    assert conversation.status == ConversationStatus.CLOSED
    assert conversation.updated_at == updated_at
    assert dispatcher.events == []


def test_close_forbidden_for_strangers(
    db: Session,
    setup_active_conversation,
    setup_other_client,
    setup_second_attendant,
):
    service = ConversationService(db)
    for user in (setup_other_client, setup_second_attendant):
        with pytest.raises(ForbiddenError):
            service.close_conversation(
                as_principal(user), setup_active_conversation.id
            )
    db.refresh(setup_active_conversation)
    assert setup_active_conversation.status == ConversationStatus.ACTIVE


def test_closed_conversation_cannot_reopen(
    db: Session, setup_closed_conversation, setup_admin
):
    service = ConversationService(db)
    with pytest.raises(InvalidStateError):
        service.assign_conversation(
            as_principal(setup_admin), setup_closed_conversation.id
        )


def test_list_conversations_visibility(
    db: Session,
    setup_client_user,
    setup_other_client,
    setup_attendant,
    setup_second_attendant,
    setup_admin,
):
    pending = make_conversation(db, setup_client_user)
    mine = make_conversation(
        db,
        setup_client_user,
        status=ConversationStatus.ACTIVE,
        attendant=setup_attendant,
    )
    theirs = make_conversation(
        db,
        setup_other_client,
        status=ConversationStatus.ACTIVE,
        attendant=setup_second_attendant,
    )
    service = ConversationService(db)

    def ids(user, **kwargs):
        return {c.id for c in service.list_conversations(as_principal(user), **kwargs)}

    assert ids(setup_client_user) == {pending.id, mine.id}
    assert ids(setup_other_client) == {theirs.id}
    assert ids(setup_attendant) == {pending.id, mine.id}
    assert ids(setup_second_attendant) == {pending.id, theirs.id}
    assert ids(setup_admin) == {pending.id, mine.id, theirs.id}
    assert ids(setup_admin, status=ConversationStatus.PENDING) == {pending.id}


def test_list_conversations_newest_first_with_last_message(
    db: Session, setup_client_user
):
    older = make_conversation(db, setup_client_user)
    newer = make_conversation(db, setup_client_user)
    make_message(db, older, setup_client_user, "first")
    make_message(db, older, setup_client_user, "second")
    service = ConversationService(db)
    listed = service.list_conversations(as_principal(setup_client_user))
    assert [c.id for c in listed] == [newer.id, older.id]
    assert listed[0].last_message is None
    assert listed[1].last_message.content == "second"
    assert listed[1].client.id == setup_client_user.id


def test_get_conversation_detail(
    db: Session, setup_active_conversation, setup_attendant
):
    client = setup_active_conversation.client
    make_message(db, setup_active_conversation, client, "hi")
    make_message(db, setup_active_conversation, setup_attendant, "hello, how can I help?")
    service = ConversationService(db)
    detail = service.get_conversation_detail(
        as_principal(client), setup_active_conversation.id
    )
    assert detail.attendant.id == setup_attendant.id
    assert [m.content for m in detail.messages] == ["hi", "hello, how can I help?"]
    assert detail.messages[1].sender.name == setup_attendant.name


def test_get_conversation_detail_access(
    db: Session,
    setup_conversation,
    setup_other_client,
    setup_attendant,
):
    service = ConversationService(db)
    with pytest.raises(ForbiddenError):
        service.get_conversation_detail(
            as_principal(setup_other_client), setup_conversation.id
        )
    preview = service.get_conversation_detail(
        as_principal(setup_attendant), setup_conversation.id
    )
    assert preview.id == setup_conversation.id
    with pytest.raises(NotFoundError):
        service.get_conversation_detail(as_principal(setup_attendant), uuid4())

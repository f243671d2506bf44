import asyncio
from datetime import timedelta

import pytest
from sqlalchemy import update

from app.core.exceptions import Conflict, Forbidden
from app.models.notification import NotificationTypeEnum
from app.models.request import Request, RequestStatusEnum
from app.models.user import UserRoleEnum
from app.repositories.bid_repo import BidRepository
from app.repositories.notification_repo import NotificationRepository
from app.repositories.user_repo import UserRepository
from app.services.award_service import AwardService
from app.services.bid_service import BidService
from app.services.notification_service import NotificationService
from app.services.request_service import RequestService
from app.utils.clock import utcnow


async def test_award_selects_exactly_one_bid(db, make_user, make_request, place_bid, notifier, mailer):
    client = await make_user()
    dev_a = await make_user(UserRoleEnum.developer, name="A")
    dev_b = await make_user(UserRoleEnum.developer, name="B")
    request = await make_request(client)
    bid_a = await place_bid(request, dev_a, price=900000)
    bid_b = await place_bid(request, dev_b, price=800000)

    awarded = await AwardService(db, notification_service=notifier).select_winning_bid(bid_a.bid_id, client)

    assert awarded.status == RequestStatusEnum.awarded
    assert awarded.awarded_bid_id == bid_a.bid_id
    assert awarded.awarded_at is not None

    bids = {b.bid_id: b for b in await BidService(db).list_bids_for_request(request.request_id)}
    assert bids[bid_a.bid_id].is_selected is True
    assert bids[bid_a.bid_id].selected_at is not None
    assert bids[bid_b.bid_id].is_selected is False

    repo = NotificationRepository(db)
    winner_types = [n.type for n in await repo.list_notifications_by_user(dev_a.user_id)]
    loser_types = [n.type for n in await repo.list_notifications_by_user(dev_b.user_id)]
    assert winner_types == [NotificationTypeEnum.awarded]
    assert loser_types == [NotificationTypeEnum.not_selected]
    assert dev_a.email in [to for to, _, _ in mailer.sent]


async def test_second_award_is_rejected(db, make_user, make_request, place_bid, notifier):
    client = await make_user()
    dev_a = await make_user(UserRoleEnum.developer)
    dev_b = await make_user(UserRoleEnum.developer)
    request = await make_request(client)
    bid_a = await place_bid(request, dev_a)
    bid_b = await place_bid(request, dev_b)
    service = AwardService(db, notification_service=notifier)

    await service.select_winning_bid(bid_a.bid_id, client)
    with pytest.raises(Conflict):
        await service.select_winning_bid(bid_b.bid_id, client)

    bids = await BidService(db).list_bids_for_request(request.request_id)
    assert [b.bid_id for b in bids if b.is_selected] == [bid_a.bid_id]


async def test_stale_award_loses_compare_and_swap(db, make_user, make_request, place_bid, notifier):
    client = await make_user()
    dev_a = await make_user(UserRoleEnum.developer)
    dev_b = await make_user(UserRoleEnum.developer)
    request = await make_request(client)
    bid_a = await place_bid(request, dev_a)
    bid_b = await place_bid(request, dev_b)
    request_id, client_id = request.request_id, client.user_id
    bid_a_id, bid_b_id = bid_a.bid_id, bid_b.bid_id
    repo = BidRepository(db)

    # 兩個呼叫者都在 open 時讀到需求，只有先寫入的那個成功
    assert await repo.award_bid(request_id, bid_a_id, client_id, utcnow()) is True
    assert await repo.award_bid(request_id, bid_b_id, client_id, utcnow()) is False

    stored_b = await repo.get_bid_by_id(bid_b_id)
    assert stored_b.is_selected is False
    assert stored_b.request.awarded_bid_id == bid_a_id


async def test_award_rolls_back_when_bid_belongs_to_other_request(db, make_user, make_request, place_bid):
    client = await make_user()
    developer = await make_user(UserRoleEnum.developer)
    request = await make_request(client)
    other_request = await make_request(client, title="Other request")
    foreign_bid = await place_bid(other_request, developer)
    request_id, foreign_bid_id = request.request_id, foreign_bid.bid_id
    repo = BidRepository(db)

    assert await repo.award_bid(request_id, foreign_bid_id, client.user_id, utcnow()) is False

    # 第一步的 open -> awarded 也一併 rollback
    bid = await repo.get_bid_by_id(foreign_bid_id)
    assert bid.is_selected is False
    stored = await RequestService(db).get_request(request_id)
    assert stored.status == RequestStatusEnum.open
    assert stored.awarded_bid_id is None


async def test_concurrent_awards_have_one_winner(session_factory, make_user, make_request, place_bid, mailer):
    client = await make_user()
    dev_a = await make_user(UserRoleEnum.developer)
    dev_b = await make_user(UserRoleEnum.developer)
    request = await make_request(client)
    bid_a = await place_bid(request, dev_a)
    bid_b = await place_bid(request, dev_b)
    request_id, client_id = request.request_id, client.user_id

    async def award(bid_id):
        # 每個呼叫者各自一個 session，如同兩個同時進來的 HTTP 請求
        async with session_factory() as session:
            caller = await UserRepository(session).get_user_by_id(client_id)
            service = AwardService(session, notification_service=NotificationService(session, email_sender=mailer))
            try:
                await service.select_winning_bid(bid_id, caller)
                return "ok"
            except Conflict:
                return "conflict"

    results = await asyncio.gather(award(bid_a.bid_id), award(bid_b.bid_id))

    assert sorted(results) == ["conflict", "ok"]
    async with session_factory() as session:
        bids = await BidRepository(session).list_bids_for_request(request_id)
        stored = await RequestService(session).get_request(request_id)
    selected = [b.bid_id for b in bids if b.is_selected]
    assert len(selected) == 1
    assert stored.awarded_bid_id == selected[0]


async def test_only_owner_can_award(db, make_user, make_request, place_bid, notifier):
    client = await make_user()
    stranger = await make_user()
    developer = await make_user(UserRoleEnum.developer)
    request = await make_request(client)
    bid = await place_bid(request, developer)

    with pytest.raises(Forbidden):
        await AwardService(db, notification_service=notifier).select_winning_bid(bid.bid_id, stranger)


async def test_award_missing_bid(db, make_user, notifier):
    client = await make_user()
    with pytest.raises(Conflict):
        await AwardService(db, notification_service=notifier).select_winning_bid(
            "00000000-0000-0000-0000-000000000000", client
        )


async def test_award_after_bidding_window(db, make_user, make_request, place_bid, notifier):
    client = await make_user()
    developer = await make_user(UserRoleEnum.developer)
    request = await make_request(client)
    bid = await place_bid(request, developer)

    # 投標期間結束後仍可選標
    await db.execute(
        update(Request)
        .where(Request.request_id == request.request_id)
        .values(expires_at=utcnow() - timedelta(minutes=5))
    )
    await db.commit()

    awarded = await AwardService(db, notification_service=notifier).select_winning_bid(bid.bid_id, client)
    assert awarded.status == RequestStatusEnum.awarded
    assert awarded.is_expired is True


async def test_cannot_award_cancelled_request(db, make_user, make_request, place_bid, notifier):
    client = await make_user()
    developer = await make_user(UserRoleEnum.developer)
    request = await make_request(client)
    bid = await place_bid(request, developer)
    await RequestService(db).cancel_request(request.request_id, client)

    with pytest.raises(Conflict):
        await AwardService(db, notification_service=notifier).select_winning_bid(bid.bid_id, client)

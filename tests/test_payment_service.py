import re

import pytest

from app.core.exceptions import Conflict, Forbidden, GatewayError, NotFound
from app.models.notification import NotificationTypeEnum
from app.models.payment import PaymentStatusEnum
from app.models.request import RequestStatusEnum
from app.models.user import UserRoleEnum
from app.repositories.notification_repo import NotificationRepository
from app.services.award_service import AwardService
from app.services.payment_service import PaymentService, generate_order_id
from app.services.request_service import RequestService


@pytest.fixture
def awarded_request(db, make_user, make_request, place_bid, notifier):
    """委託人刊登需求 -> 開發者投標 900,000 -> 選標"""
    async def _awarded_request(price=900000):
        client = await make_user(UserRoleEnum.client)
        developer = await make_user(UserRoleEnum.developer)
        request = await make_request(client)
        bid = await place_bid(request, developer, price=price)
        await AwardService(db, notification_service=notifier).select_winning_bid(bid.bid_id, client)
        return client, developer, request, bid
    return _awarded_request


@pytest.fixture
def payments(db, gateway, notifier):
    return PaymentService(db, gateway=gateway, notification_service=notifier)


def test_generate_order_id_format():
    order_id = generate_order_id()
    assert re.fullmatch(r"ORDER_\d{13}_[0-9a-f]{6}", order_id)
    assert order_id != generate_order_id()


async def test_create_payment_uses_bid_price(awarded_request, payments):
    client, developer, request, bid = await awarded_request(price=900000)

    payment = await payments.create_payment(request.request_id, bid.bid_id, client)

    assert payment.status == PaymentStatusEnum.pending
    assert payment.amount == 900000
    assert payment.payer_id == client.user_id
    assert payment.payee_id == developer.user_id


async def test_create_payment_is_idempotent(awarded_request, payments):
    client, _, request, bid = await awarded_request()

    first = await payments.create_payment(request.request_id, bid.bid_id, client)
    second = await payments.create_payment(request.request_id, bid.bid_id, client)

    assert first.payment_id == second.payment_id
    assert first.order_id == second.order_id


async def test_checkout_contains_order_name(awarded_request, payments):
    client, _, request, bid = await awarded_request()

    checkout = await payments.create_checkout(request.request_id, bid.bid_id, client)

    assert checkout.order_name == request.title
    assert checkout.amount == bid.price
    assert checkout.status == PaymentStatusEnum.pending


async def test_create_payment_requires_awarded_request(db, make_user, make_request, place_bid, payments):
    client = await make_user()
    developer = await make_user(UserRoleEnum.developer)
    request = await make_request(client)
    bid = await place_bid(request, developer)

    with pytest.raises(Conflict):
        await payments.create_payment(request.request_id, bid.bid_id, client)


async def test_create_payment_for_losing_bid(db, make_user, make_request, place_bid, notifier, payments):
    client = await make_user()
    winner = await make_user(UserRoleEnum.developer)
    loser = await make_user(UserRoleEnum.developer)
    request = await make_request(client)
    winning_bid = await place_bid(request, winner)
    losing_bid = await place_bid(request, loser)
    await AwardService(db, notification_service=notifier).select_winning_bid(winning_bid.bid_id, client)

    with pytest.raises(Conflict):
        await payments.create_payment(request.request_id, losing_bid.bid_id, client)


async def test_only_client_can_create_payment(awarded_request, payments):
    _, developer, request, bid = await awarded_request()

    with pytest.raises(Forbidden):
        await payments.create_payment(request.request_id, bid.bid_id, developer)


async def test_confirm_payment_holds_funds(db, awarded_request, payments, gateway, mailer):
    client, developer, request, bid = await awarded_request(price=900000)
    payment = await payments.create_payment(request.request_id, bid.bid_id, client)

    confirmed = await payments.confirm_payment("pay_key_1", payment.order_id, 900000, client)

    assert confirmed.status == PaymentStatusEnum.held
    assert confirmed.payment_key == "pay_key_1"
    assert confirmed.paid_at is not None
    # 金流收到的是資料庫中的金額
    assert gateway.calls == [("pay_key_1", payment.order_id, 900000)]

    types = [n.type for n in await NotificationRepository(db).list_notifications_by_user(developer.user_id)]
    assert NotificationTypeEnum.payment_received in types
    assert developer.email in [to for to, _, _ in mailer.sent]


async def test_confirm_payment_amount_mismatch(awarded_request, payments, gateway):
    client, _, request, bid = await awarded_request(price=900000)
    payment = await payments.create_payment(request.request_id, bid.bid_id, client)

    with pytest.raises(Conflict):
        await payments.confirm_payment("pay_key_1", payment.order_id, 100, client)

    assert gateway.calls == []
    stored = await payments.get_payment_for_request(request.request_id, client)
    assert stored.status == PaymentStatusEnum.pending


async def test_confirm_payment_replay_is_rejected(awarded_request, payments, gateway):
    client, _, request, bid = await awarded_request()
    payment = await payments.create_payment(request.request_id, bid.bid_id, client)
    await payments.confirm_payment("pay_key_1", payment.order_id, bid.price, client)

    with pytest.raises(Conflict):
        await payments.confirm_payment("pay_key_1", payment.order_id, bid.price, client)

    assert len(gateway.calls) == 1


async def test_gateway_failure_keeps_payment_pending(awarded_request, payments, gateway):
    client, _, request, bid = await awarded_request()
    payment = await payments.create_payment(request.request_id, bid.bid_id, client)
    gateway.error = GatewayError("信用卡授權被拒")

    with pytest.raises(GatewayError):
        await payments.confirm_payment("pay_key_1", payment.order_id, bid.price, client)

    stored = await payments.get_payment_for_request(request.request_id, client)
    assert stored.status == PaymentStatusEnum.pending

    # 同一付款人可以重試
    gateway.error = None
    retried = await payments.confirm_payment("pay_key_2", payment.order_id, bid.price, client)
    assert retried.status == PaymentStatusEnum.held


async def test_confirm_unknown_order(awarded_request, payments):
    client, *_ = await awarded_request()
    with pytest.raises(NotFound):
        await payments.confirm_payment("pay_key_1", "ORDER_0_000000", 1000, client)


async def test_confirm_by_other_user_is_forbidden(awarded_request, payments):
    client, developer, request, bid = await awarded_request()
    payment = await payments.create_payment(request.request_id, bid.bid_id, client)

    with pytest.raises(Forbidden):
        await payments.confirm_payment("pay_key_1", payment.order_id, bid.price, developer)


async def test_release_completes_request(db, awarded_request, payments):
    client, developer, request, bid = await awarded_request()
    payment = await payments.create_payment(request.request_id, bid.bid_id, client)
    await payments.confirm_payment("pay_key_1", payment.order_id, bid.price, client)

    released = await payments.release_payment(payment.payment_id, client)

    assert released.status == PaymentStatusEnum.released
    assert released.released_at is not None
    stored_request = await RequestService(db).get_request(request.request_id)
    assert stored_request.status == RequestStatusEnum.completed

    types = [n.type for n in await NotificationRepository(db).list_notifications_by_user(developer.user_id)]
    assert NotificationTypeEnum.project_completed in types


async def test_release_twice_is_rejected(awarded_request, payments):
    client, _, request, bid = await awarded_request()
    payment = await payments.create_payment(request.request_id, bid.bid_id, client)
    await payments.confirm_payment("pay_key_1", payment.order_id, bid.price, client)
    await payments.release_payment(payment.payment_id, client)

    with pytest.raises(Conflict):
        await payments.release_payment(payment.payment_id, client)


async def test_release_before_confirm_is_rejected(db, awarded_request, payments):
    client, _, request, bid = await awarded_request()
    payment = await payments.create_payment(request.request_id, bid.bid_id, client)

    with pytest.raises(Conflict):
        await payments.release_payment(payment.payment_id, client)

    stored_request = await RequestService(db).get_request(request.request_id)
    assert stored_request.status == RequestStatusEnum.awarded


async def test_payee_cannot_release(awarded_request, payments):
    client, developer, request, bid = await awarded_request()
    payment = await payments.create_payment(request.request_id, bid.bid_id, client)
    await payments.confirm_payment("pay_key_1", payment.order_id, bid.price, client)

    with pytest.raises(Forbidden):
        await payments.release_payment(payment.payment_id, developer)


async def test_create_after_confirm_is_rejected(awarded_request, payments):
    client, _, request, bid = await awarded_request()
    payment = await payments.create_payment(request.request_id, bid.bid_id, client)
    await payments.confirm_payment("pay_key_1", payment.order_id, bid.price, client)

    with pytest.raises(Conflict):
        await payments.create_payment(request.request_id, bid.bid_id, client)


async def test_get_payment_for_request_hides_from_strangers(make_user, awarded_request, payments):
    client, developer, request, bid = await awarded_request()
    stranger = await make_user()
    await payments.create_payment(request.request_id, bid.bid_id, client)

    assert (await payments.get_payment_for_request(request.request_id, developer)).payee_id == developer.user_id
    with pytest.raises(Forbidden):
        await payments.get_payment_for_request(request.request_id, stranger)

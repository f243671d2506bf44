import pytest

from app.core.exceptions import Conflict, Forbidden, NotFound
from app.models.user import UserRoleEnum
from app.repositories.user_repo import UserRepository
from app.services.award_service import AwardService
from app.services.contract_service import ContractService


async def test_contract_for_awarded_request(db, make_user, make_request, place_bid, notifier):
    client = await make_user(UserRoleEnum.client, name="Kim")
    developer = await make_user(UserRoleEnum.developer, name="Lee")
    request = await make_request(client, title="Reservation system")
    bid = await place_bid(request, developer, price=1200000, estimated_days=45)
    await AwardService(db, notification_service=notifier).select_winning_bid(bid.bid_id, client)

    contract = await ContractService(db).get_contract(request.request_id, developer)

    assert contract.client_name == "Kim"
    assert contract.developer_name == "Lee"
    assert contract.price == 1200000
    assert "Reservation system" in contract.content
    assert "KRW 1,200,000" in contract.content
    assert "45 天" in contract.content
    assert "未指定" in contract.content  # 沒有填完成期限


async def test_contract_not_available_before_award(db, make_user, make_request, place_bid):
    client = await make_user()
    developer = await make_user(UserRoleEnum.developer)
    request = await make_request(client)
    await place_bid(request, developer)

    with pytest.raises(Conflict):
        await ContractService(db).get_contract(request.request_id, client)
    with pytest.raises(NotFound):
        await ContractService(db).get_contract("00000000-0000-0000-0000-000000000000", client)


async def test_contract_hidden_from_losing_bidder(db, make_user, make_request, place_bid, notifier):
    client = await make_user()
    winner = await make_user(UserRoleEnum.developer)
    loser = await make_user(UserRoleEnum.developer)
    request = await make_request(client)
    winning_bid = await place_bid(request, winner)
    await place_bid(request, loser)
    await AwardService(db, notification_service=notifier).select_winning_bid(winning_bid.bid_id, client)

    with pytest.raises(Forbidden):
        await ContractService(db).get_contract(request.request_id, loser)


async def test_contract_in_fresh_session(db, session_factory, make_user, make_request, place_bid, notifier):
    client = await make_user(UserRoleEnum.client, name="Kim")
    developer = await make_user(UserRoleEnum.developer, name="Lee")
    request = await make_request(client, title="Reservation system")
    bid = await place_bid(request, developer, price=1200000)
    await AwardService(db, notification_service=notifier).select_winning_bid(bid.bid_id, client)
    request_id, developer_id = request.request_id, developer.user_id

    # 新的 session：委託人尚未載入，合約仍要能帶出雙方名稱
    async with session_factory() as session:
        caller = await UserRepository(session).get_user_by_id(developer_id)
        contract = await ContractService(session).get_contract(request_id, caller)

    assert contract.client_name == "Kim"
    assert contract.developer_name == "Lee"

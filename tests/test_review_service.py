import pytest

from app.core.exceptions import Conflict, Forbidden, Invalid
from app.models.notification import NotificationTypeEnum
from app.models.user import UserRoleEnum
from app.repositories.notification_repo import NotificationRepository
from app.schemas.review_schema import ReviewCreate
from app.services.award_service import AwardService
from app.services.review_service import ReviewService


@pytest.fixture
def reviews(db, notifier):
    return ReviewService(db, notification_service=notifier)


@pytest.fixture
def contracted(db, make_user, make_request, place_bid, notifier):
    async def _contracted():
        client = await make_user(UserRoleEnum.client, name="Client")
        developer = await make_user(UserRoleEnum.developer, name="Dev")
        request = await make_request(client)
        bid = await place_bid(request, developer)
        await AwardService(db, notification_service=notifier).select_winning_bid(bid.bid_id, client)
        return client, developer, request
    return _contracted


async def test_client_reviews_developer(db, contracted, reviews):
    client, developer, request = await contracted()

    review = await reviews.submit_review(
        ReviewCreate(request_id=request.request_id, reviewee_id=developer.user_id, rating=5, comment="Great work"),
        client,
    )

    assert review.rating == 5
    assert review.reviewer.display_name == "Client"
    assert review.request.title == request.title

    types = [n.type for n in await NotificationRepository(db).list_notifications_by_user(developer.user_id)]
    assert NotificationTypeEnum.review_received in types


async def test_rating_must_be_between_one_and_five(contracted, reviews):
    client, developer, request = await contracted()
    for rating in (0, 6):
        with pytest.raises(Invalid):
            await reviews.submit_review(
                ReviewCreate(request_id=request.request_id, reviewee_id=developer.user_id, rating=rating),
                client,
            )


async def test_review_only_counterpart(make_user, contracted, reviews):
    client, developer, request = await contracted()
    stranger = await make_user()

    with pytest.raises(Forbidden):
        await reviews.submit_review(
            ReviewCreate(request_id=request.request_id, reviewee_id=developer.user_id, rating=4), stranger
        )
    with pytest.raises(Invalid):
        await reviews.submit_review(
            ReviewCreate(request_id=request.request_id, reviewee_id=stranger.user_id, rating=4), client
        )


async def test_duplicate_review_is_rejected(contracted, reviews):
    client, developer, request = await contracted()
    data = ReviewCreate(request_id=request.request_id, reviewee_id=developer.user_id, rating=4)

    await reviews.submit_review(data, client)
    with pytest.raises(Conflict):
        await reviews.submit_review(data, client)


async def test_cannot_review_open_request(make_user, make_request, place_bid, reviews):
    client = await make_user()
    developer = await make_user(UserRoleEnum.developer)
    request = await make_request(client)
    await place_bid(request, developer)

    with pytest.raises(Conflict):
        await reviews.submit_review(
            ReviewCreate(request_id=request.request_id, reviewee_id=developer.user_id, rating=4), client
        )


async def test_can_write_review(contracted, reviews):
    client, developer, request = await contracted()

    before = await reviews.can_write_review(request.request_id, developer)
    assert before.can_write is True
    assert before.reviewee_id == client.user_id
    assert before.is_client is False

    await reviews.submit_review(
        ReviewCreate(request_id=request.request_id, reviewee_id=client.user_id, rating=5), developer
    )

    after = await reviews.can_write_review(request.request_id, developer)
    assert after.can_write is False
    assert after.already_written is True


async def test_hidden_reviews_are_not_listed(make_user, contracted, reviews):
    client, developer, request = await contracted()
    admin = await make_user(UserRoleEnum.admin)
    review = await reviews.submit_review(
        ReviewCreate(request_id=request.request_id, reviewee_id=developer.user_id, rating=1, comment="spam"),
        client,
    )
    assert len(await reviews.list_reviews_for_user(developer.user_id)) == 1

    hidden = await reviews.set_review_visibility(review.review_id, admin, False)

    assert hidden.is_visible is False
    assert await reviews.list_reviews_for_user(developer.user_id) == []
    assert await reviews.list_reviews_for_request(request.request_id) == []

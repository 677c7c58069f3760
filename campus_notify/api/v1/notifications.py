"""
Notification and subscription routes.
Every route acts on behalf of the authenticated caller; another user's
notifications and subscriptions are reported as not found.
"""

from fastapi import APIRouter, Query, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from campus_notify.core.config import settings
from campus_notify.core.dependencies import CurrentUserId, DBSession, NotificationServiceDep
from campus_notify.core.exceptions import NotFoundException
from campus_notify.core.rate_limit import limiter
from campus_notify.models.notification import Notification
from campus_notify.schemas.common import ApiResponse
from campus_notify.schemas.notification import (
    MarkAllReadResult,
    NotificationRead,
    SendNotificationRequest,
    UnreadCount,
)
from campus_notify.schemas.subscription import (
    SubscribeRequest,
    SubscriptionRead,
    TitleConfigured,
    UnsubscribeAllResult,
    UnsubscribeTitleRequest,
)
from campus_notify.services.enrichment import make_absolute
from campus_notify.services.notification_service import NotificationService
from campus_notify.services.subscription_service import subscription_service

router = APIRouter(prefix="/notifications", tags=["Notifications"])

DEFAULT_POST_SUBSCRIPTION_TITLE = "New post updates"


def to_read(notification: Notification, request: Request) -> NotificationRead:
    """Serialize with media URLs made absolute against the request host."""
    base_url = str(request.base_url)
    read = NotificationRead.model_validate(notification)
    return read.model_copy(
        update={
            "organizer_avatar_url": make_absolute(read.organizer_avatar_url, base_url),
            "author_avatar_url": make_absolute(read.author_avatar_url, base_url),
            "post_image_url": make_absolute(read.post_image_url, base_url),
        }
    )


async def _owned_notification(
    service: NotificationService, db: AsyncSession, notification_id: str, user_id: str
) -> Notification:
    notification = await service.get_by_id(db, notification_id)
    if notification is None or notification.user_id != user_id:
        raise NotFoundException("Notification", notification_id)
    return notification


# ── Notifications ─────────────────────────────────────────────────────────────


@router.get(
    "",
    response_model=ApiResponse[list[NotificationRead]],
    summary="List my notifications",
)
async def list_notifications(
    request: Request,
    current_user_id: CurrentUserId,
    db: DBSession,
    service: NotificationServiceDep,
    unread_only: bool = Query(default=False, alias="unreadOnly"),
    limit: int = Query(
        default=settings.NOTIFICATION_LIST_DEFAULT_LIMIT,
        ge=0,
        le=settings.NOTIFICATION_LIST_MAX_LIMIT,
    ),
) -> ApiResponse[list[NotificationRead]]:
    notifications = await service.list_enriched(
        db, user_id=current_user_id, limit=limit, unread_only=unread_only
    )
    return ApiResponse.ok(
        "Notifications retrieved successfully",
        [to_read(n, request) for n in notifications],
    )


@router.get(
    "/unread-count",
    response_model=ApiResponse[UnreadCount],
    summary="Count my unread notifications",
)
async def unread_count(
    current_user_id: CurrentUserId,
    db: DBSession,
    service: NotificationServiceDep,
) -> ApiResponse[UnreadCount]:
    count = await service.count_unread(db, user_id=current_user_id)
    return ApiResponse.ok("Unread count retrieved", UnreadCount(count=count))


@router.post(
    "/mark-all-read",
    response_model=ApiResponse[MarkAllReadResult],
    summary="Mark all my notifications as read",
)
async def mark_all_read(
    current_user_id: CurrentUserId,
    db: DBSession,
    service: NotificationServiceDep,
) -> ApiResponse[MarkAllReadResult]:
    count = await service.mark_all_as_read(db, user_id=current_user_id)
    return ApiResponse.ok(
        "All notifications marked as read", MarkAllReadResult(count=count)
    )


@router.post(
    "/read/{notification_id}",
    response_model=ApiResponse[NotificationRead],
    summary="Mark a notification as read",
)
async def mark_as_read(
    notification_id: str,
    request: Request,
    current_user_id: CurrentUserId,
    db: DBSession,
    service: NotificationServiceDep,
) -> ApiResponse[NotificationRead]:
    notification = await _owned_notification(service, db, notification_id, current_user_id)
    notification = await service.mark_as_read(db, notification.id)
    return ApiResponse.ok("Notification marked as read", to_read(notification, request))


@router.post(
    "/send",
    response_model=ApiResponse[NotificationRead],
    status_code=status.HTTP_201_CREATED,
    summary="Send a notification to a user",
)
@limiter.limit(settings.RATE_LIMIT_SEND)
async def send_notification(
    request: Request,
    body: SendNotificationRequest,
    current_user_id: CurrentUserId,
    db: DBSession,
    service: NotificationServiceDep,
) -> ApiResponse[NotificationRead]:
    notification = await service.send_notification(
        db,
        user_id=body.user_id,
        title=body.title,
        message=body.message,
        type=body.type,
        reference_id=body.reference_id,
        organizer_id=body.organizer_id,
        category=body.category,
        from_user_id=current_user_id,
    )
    return ApiResponse.ok("Notification sent", to_read(notification, request))


# ── Subscriptions ─────────────────────────────────────────────────────────────


@router.post(
    "/subscribe",
    response_model=ApiResponse[SubscriptionRead],
    summary="Subscribe to a post, a title series, or an organizer",
)
async def subscribe(
    body: SubscribeRequest,
    current_user_id: CurrentUserId,
    db: DBSession,
) -> ApiResponse[SubscriptionRead]:
    if body.post_id:
        subscription = await subscription_service.subscribe_to_post(
            db,
            user_id=current_user_id,
            post_id=body.post_id,
            title=body.title or DEFAULT_POST_SUBSCRIPTION_TITLE,
            organizer_id=body.organizer_id,
            category=body.category,
        )
        message = "Subscribed to post"
    elif body.title:
        subscription = await subscription_service.subscribe_to_title(
            db,
            user_id=current_user_id,
            title=body.title,
            organizer_id=body.organizer_id,
            category=body.category,
        )
        message = "Subscribed to title"
    else:
        subscription = await subscription_service.subscribe_to_organizer(
            db, user_id=current_user_id, organizer_id=body.organizer_id
        )
        message = "Subscribed to organizer"
    return ApiResponse.ok(message, SubscriptionRead.model_validate(subscription))


@router.post(
    "/unsubscribe-title",
    response_model=ApiResponse[None],
    summary="Stop notifications for a title series",
)
async def unsubscribe_title(
    body: UnsubscribeTitleRequest,
    current_user_id: CurrentUserId,
    db: DBSession,
) -> ApiResponse[None]:
    changed = await subscription_service.unsubscribe_title(
        db, user_id=current_user_id, title=body.title, organizer_id=body.organizer_id
    )
    if not changed:
        return ApiResponse(success=False, message="No active title subscription found")
    return ApiResponse.ok("Title notifications disabled")


@router.get(
    "/is-title-configured",
    response_model=ApiResponse[TitleConfigured],
    summary="Check whether a title subscription is active",
)
async def is_title_configured(
    current_user_id: CurrentUserId,
    db: DBSession,
    organizer_id: str = Query(alias="organizerId", min_length=1),
    title: str = Query(min_length=1),
) -> ApiResponse[TitleConfigured]:
    configured = await subscription_service.is_title_subscribed(
        db, user_id=current_user_id, organizer_id=organizer_id, title=title
    )
    return ApiResponse.ok(
        "Title configuration retrieved", TitleConfigured(is_configured=configured)
    )


@router.get(
    "/subscriptions",
    response_model=ApiResponse[list[SubscriptionRead]],
    summary="List my subscriptions",
)
async def list_subscriptions(
    current_user_id: CurrentUserId,
    db: DBSession,
    include_inactive: bool = Query(default=False, alias="includeInactive"),
) -> ApiResponse[list[SubscriptionRead]]:
    subscriptions = await subscription_service.get_user_subscriptions(
        db, user_id=current_user_id, include_inactive=include_inactive
    )
    return ApiResponse.ok(
        "Subscriptions retrieved successfully",
        [SubscriptionRead.model_validate(s) for s in subscriptions],
    )


@router.post(
    "/unsubscribe/{subscription_id}",
    response_model=ApiResponse[None],
    summary="Cancel one of my subscriptions",
)
async def unsubscribe(
    subscription_id: str,
    current_user_id: CurrentUserId,
    db: DBSession,
) -> ApiResponse[None]:
    subscription = await subscription_service.get_subscription(
        db, subscription_id=subscription_id
    )
    if subscription is None or subscription.user_id != current_user_id:
        raise NotFoundException("Subscription", subscription_id)
    await subscription_service.unsubscribe(db, subscription_id=subscription.id)
    return ApiResponse.ok("Unsubscribed successfully")


@router.post(
    "/unsubscribe-all",
    response_model=ApiResponse[UnsubscribeAllResult],
    summary="Cancel all of my subscriptions",
)
async def unsubscribe_all(
    current_user_id: CurrentUserId,
    db: DBSession,
) -> ApiResponse[UnsubscribeAllResult]:
    count = await subscription_service.unsubscribe_all_for_user(db, user_id=current_user_id)
    return ApiResponse.ok(
        "All subscriptions cancelled", UnsubscribeAllResult(count=count)
    )


# ── Single notification (declared last so static paths match first) ──────────


@router.get(
    "/{notification_id}",
    response_model=ApiResponse[NotificationRead],
    summary="Get one of my notifications",
)
async def get_notification(
    notification_id: str,
    request: Request,
    current_user_id: CurrentUserId,
    db: DBSession,
    service: NotificationServiceDep,
) -> ApiResponse[NotificationRead]:
    notification = await _owned_notification(service, db, notification_id, current_user_id)
    return ApiResponse.ok("Notification retrieved", to_read(notification, request))

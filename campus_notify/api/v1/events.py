"""
Event-producer hooks.
The post, like, comment and message services call these after their own
writes succeed; the authenticated caller is the acting user.
"""
from __future__ import annotations

from fastapi import APIRouter, Request, status

from campus_notify.api.v1.notifications import to_read
from campus_notify.core.dependencies import CurrentUserId, DBSession, NotificationServiceDep
from campus_notify.core.exceptions import NotFoundException
from campus_notify.crud.read_models import crud_post
from campus_notify.schemas.common import ApiResponse
from campus_notify.schemas.events import (
    CommentEvent,
    FanoutSummary,
    LikeEvent,
    MessageEvent,
    NewPostEvent,
)
from campus_notify.schemas.notification import NotificationRead

router = APIRouter(prefix="/events", tags=["Events"])


@router.post(
    "/posts",
    response_model=ApiResponse[FanoutSummary],
    status_code=status.HTTP_202_ACCEPTED,
    summary="Fan out notifications for a newly created post",
)
async def new_post(
    body: NewPostEvent,
    current_user_id: CurrentUserId,
    db: DBSession,
    service: NotificationServiceDep,
) -> ApiResponse[FanoutSummary]:
    result = await service.send_notifications_for_new_post(
        db,
        post_id=body.post_id,
        organizer_id=body.organizer_id,
        title=body.title,
        message=body.message,
        from_user_id=current_user_id,
    )
    return ApiResponse.ok(
        "Post notifications dispatched",
        FanoutSummary(
            recipients=len(result.recipients),
            created=len(result.created),
            failed=len(result.failed),
        ),
    )


@router.post(
    "/likes",
    response_model=ApiResponse[NotificationRead],
    summary="Notify a post owner about a like",
)
async def post_liked(
    body: LikeEvent,
    request: Request,
    current_user_id: CurrentUserId,
    db: DBSession,
    service: NotificationServiceDep,
) -> ApiResponse[NotificationRead]:
    post = await crud_post.get(db, body.post_id)
    if post is None:
        raise NotFoundException("Post", body.post_id)

    notification = await service.send_like_notification(
        db,
        post_owner_id=post.user_id,
        liker_user_id=current_user_id,
        post_id=post.id,
        post_title=post.title,
    )
    if notification is None:
        return ApiResponse.ok("Own post, no notification sent")
    return ApiResponse.ok("Like notification sent", to_read(notification, request))


@router.post(
    "/comments",
    response_model=ApiResponse[NotificationRead],
    summary="Notify a post owner about a comment",
)
async def post_commented(
    body: CommentEvent,
    request: Request,
    current_user_id: CurrentUserId,
    db: DBSession,
    service: NotificationServiceDep,
) -> ApiResponse[NotificationRead]:
    post = await crud_post.get(db, body.post_id)
    if post is None:
        raise NotFoundException("Post", body.post_id)

    notification = await service.send_comment_notification(
        db,
        post_owner_id=post.user_id,
        commenter_user_id=current_user_id,
        post_id=post.id,
        post_title=post.title,
        comment=body.comment,
    )
    if notification is None:
        return ApiResponse.ok("Own post, no notification sent")
    return ApiResponse.ok(
        "Comment notification sent", to_read(notification, request)
    )


@router.post(
    "/messages",
    response_model=ApiResponse[NotificationRead],
    summary="Notify a user about a direct message",
)
async def message_sent(
    body: MessageEvent,
    request: Request,
    current_user_id: CurrentUserId,
    db: DBSession,
    service: NotificationServiceDep,
) -> ApiResponse[NotificationRead]:
    notification = await service.send_message_notification(
        db,
        receiver_id=body.receiver_id,
        sender_id=current_user_id,
        message_content=body.content,
        message_id=body.message_id,
    )
    return ApiResponse.ok(
        "Message notification sent", to_read(notification, request)
    )

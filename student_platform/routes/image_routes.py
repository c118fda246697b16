import logging
import time
from datetime import datetime

from fastapi import APIRouter, Depends, File, Form, UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from student_platform.auth.dependencies import get_current_identity, require_admin
from student_platform.auth.jwt_handler import TokenIdentity
from student_platform.core import config
from student_platform.core.errors import InternalError, NotFound, ValidationFailed
from student_platform.database import get_db
from student_platform.models.image import Image
from student_platform.models.user import User
from student_platform.schemas import ApiModel
from student_platform.services.media_storage import (
    InvalidImage,
    MediaStorage,
    MediaUploadError,
    build_object_key,
    encode_png,
    get_media_storage,
)

router = APIRouter(tags=['images'])

logger = logging.getLogger(__name__)


class ImageResponse(ApiModel):
    id: int
    user_id: int
    image_name: str
    url: str
    sent_at: datetime


class SendImageResponse(ApiModel):
    message: str
    image: ImageResponse


def read_upload(upload: UploadFile | None) -> bytes:
    if upload is None:
        raise ValidationFailed('No image was uploaded.')
    data = upload.file.read()
    if not data:
        raise ValidationFailed('No image was uploaded.')
    return data


@router.post('/admin/send-image', response_model=SendImageResponse)
def send_image(
    phone: str = Form(...),
    image: UploadFile | None = File(None),
    identity: TokenIdentity = Depends(require_admin),
    db: Session = Depends(get_db),
    storage: MediaStorage = Depends(get_media_storage),
):
    data = read_upload(image)

    try:
        user = db.query(User).filter(User.phone == phone).first()
    except SQLAlchemyError as exc:
        logger.exception('Failed to look up image recipient')
        raise InternalError() from exc

    if user is None:
        raise NotFound(f'No user found with phone number: {phone}')

    try:
        png_data = encode_png(data)
    except InvalidImage as exc:
        raise ValidationFailed('Uploaded file is not a valid image.') from exc

    key = build_object_key(config.MEDIA_FOLDER, phone, int(time.time() * 1000))
    try:
        url = storage.upload_png(key, png_data)
    except MediaUploadError as exc:
        logger.exception('Media upload failed for %s', key)
        raise InternalError() from exc

    try:
        record = Image(user_id=user.id, image_name=phone, url=url)
        db.add(record)
        db.commit()
        db.refresh(record)
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception('Failed to store image record for user %s', user.id)
        raise InternalError() from exc

    logger.info('Admin %s sent image %s to user %s', identity.user_id, record.id, user.id)
    return SendImageResponse(message='Image sent successfully.', image=ImageResponse.model_validate(record))


@router.get('/images', response_model=list[ImageResponse])
def list_images(
    identity: TokenIdentity = Depends(get_current_identity),
    db: Session = Depends(get_db),
):
    try:
        images = db.query(Image).filter(
            Image.user_id == identity.user_id,
        ).order_by(Image.sent_at.desc(), Image.id.desc()).all()

        return [ImageResponse.model_validate(image) for image in images]
    except SQLAlchemyError as exc:
        logger.exception('Failed to list images for user %s', identity.user_id)
        raise InternalError() from exc

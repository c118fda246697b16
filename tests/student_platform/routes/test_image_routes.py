import io
from datetime import datetime

import pytest
from fastapi import HTTPException, UploadFile
from PIL import Image as PILImage

from student_platform.auth.jwt_handler import TokenIdentity
from student_platform.models.image import Image
from student_platform.routes.image_routes import list_images, send_image
from student_platform.services.media_storage import MediaUploadError


def _upload(data: bytes, filename: str = 'card.jpg') -> UploadFile:
    return UploadFile(file=io.BytesIO(data), filename=filename)


def _identity(user) -> TokenIdentity:
    return TokenIdentity(user_id=user.id, role=user.role)


class _FailingStorage:
    def upload_png(self, key: str, data: bytes) -> str:
        raise MediaUploadError(f'Upload of {key} failed.')


def test_send_image_requires_an_attachment(db, admin, student, media_storage) -> None:
    with pytest.raises(HTTPException) as exception_info:
        send_image(phone=student.phone, image=None, identity=_identity(admin), db=db, storage=media_storage)

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'No image was uploaded.'
    assert db.query(Image).count() == 0


def test_send_image_to_unknown_phone_is_not_found(db, admin, media_storage, jpeg_bytes) -> None:
    with pytest.raises(HTTPException) as exception_info:
        send_image(phone='598765432', image=_upload(jpeg_bytes), identity=_identity(admin), db=db, storage=media_storage)

    assert exception_info.value.status_code == 404
    assert exception_info.value.detail == 'No user found with phone number: 598765432'
    assert db.query(Image).count() == 0
    assert media_storage.stored_objects == {}


def test_send_image_uploads_png_and_records_image(db, admin, student, media_storage, jpeg_bytes) -> None:
    response = send_image(
        phone=student.phone,
        image=_upload(jpeg_bytes),
        identity=_identity(admin),
        db=db,
        storage=media_storage,
    )

    assert response.message == 'Image sent successfully.'
    record = db.query(Image).one()
    assert record.user_id == student.id
    assert record.image_name == student.phone
    assert response.image.url == record.url

    [(key, stored)] = media_storage.stored_objects.items()
    assert key.startswith(f'student-platform/{student.phone}-')
    assert key.endswith('.png')
    assert record.url == f'{media_storage.base_url}/{key}'
    assert PILImage.open(io.BytesIO(stored)).format == 'PNG'


def test_send_image_rejects_undecodable_bytes(db, admin, student, media_storage) -> None:
    with pytest.raises(HTTPException) as exception_info:
        send_image(
            phone=student.phone,
            image=_upload(b'definitely not an image'),
            identity=_identity(admin),
            db=db,
            storage=media_storage,
        )

    assert exception_info.value.status_code == 400
    assert db.query(Image).count() == 0


def test_failed_upload_creates_no_record(db, admin, student, jpeg_bytes) -> None:
    with pytest.raises(HTTPException) as exception_info:
        send_image(
            phone=student.phone,
            image=_upload(jpeg_bytes),
            identity=_identity(admin),
            db=db,
            storage=_FailingStorage(),
        )

    assert exception_info.value.status_code == 500
    assert exception_info.value.detail == 'Server error.'
    assert db.query(Image).count() == 0


def test_list_images_returns_only_callers_images_newest_first(db, student, make_user) -> None:
    other = make_user('544444444', full_name='Other Student')
    db.add_all([
        Image(user_id=student.id, image_name=student.phone, url='https://media/old.png', sent_at=datetime(2026, 1, 1)),
        Image(user_id=student.id, image_name=student.phone, url='https://media/new.png', sent_at=datetime(2026, 2, 1)),
        Image(user_id=other.id, image_name=other.phone, url='https://media/other.png', sent_at=datetime(2026, 3, 1)),
    ])
    db.commit()

    images = list_images(identity=_identity(student), db=db)

    assert [image.url for image in images] == ['https://media/new.png', 'https://media/old.png']


def test_sent_image_appears_in_recipients_listing(db, admin, student, media_storage, jpeg_bytes) -> None:
    db.add(Image(user_id=student.id, image_name=student.phone, url='https://media/earlier.png', sent_at=datetime(2020, 1, 1)))
    db.commit()

    response = send_image(
        phone=student.phone,
        image=_upload(jpeg_bytes),
        identity=_identity(admin),
        db=db,
        storage=media_storage,
    )

    images = list_images(identity=_identity(student), db=db)

    assert images[0].id == response.image.id
    assert len(images) == 2
    assert list_images(identity=_identity(admin), db=db) == []


def test_send_image_rejects_oversized_image(db, admin, student, media_storage, monkeypatch: pytest.MonkeyPatch) -> None:
    buffer = io.BytesIO()
    PILImage.new('RGB', (20, 20)).save(buffer, format='PNG')
    monkeypatch.setattr(PILImage, 'MAX_IMAGE_PIXELS', 10)

    with pytest.raises(HTTPException) as exception_info:
        send_image(
            phone=student.phone,
            image=_upload(buffer.getvalue(), filename='huge.png'),
            identity=_identity(admin),
            db=db,
            storage=media_storage,
        )

    assert exception_info.value.status_code == 400
    assert exception_info.value.detail == 'Uploaded file is not a valid image.'
    assert db.query(Image).count() == 0
    assert media_storage.stored_objects == {}

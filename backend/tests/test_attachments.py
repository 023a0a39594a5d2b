"""Error screenshot validation and data-URI encoding."""

import pytest

from gas_script_assistant.attachments import MAX_IMAGE_BYTES, ImageAttachment
from gas_script_assistant.errors import ValidationError


def test_png_is_encoded_as_data_uri():
    image = ImageAttachment.from_upload("error.png", b"\x89PNG", "image/png")
    assert image.to_data_uri() == "data:image/png;base64,iVBORw=="


def test_mime_type_is_guessed_from_name():
    image = ImageAttachment.from_upload("shot.jpg", b"abc")
    assert image.mime_type == "image/jpeg"


def test_non_image_is_rejected():
    with pytest.raises(ValidationError):
        ImageAttachment.from_upload("notes.txt", b"abc", "text/plain")


def test_size_limit_is_five_mebibytes():
    ImageAttachment.from_upload("ok.png", b"\0" * MAX_IMAGE_BYTES, "image/png")
    with pytest.raises(ValidationError):
        ImageAttachment.from_upload("big.png", b"\0" * (MAX_IMAGE_BYTES + 1), "image/png")

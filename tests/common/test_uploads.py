from __future__ import annotations

import pytest

from src.visitor_management.visitor_management.common.uploads import (
    delete_upload,
    maybe_save_data_url,
    save_data_url,
)
from src.visitor_management.visitor_management.core.exceptions import ValidationError


def test_save_data_url_writes_file(upload_root, png_data_url):
    path = save_data_url(png_data_url, root=upload_root, subdir="photos", prefix="visitor")

    assert path.startswith("/uploads/photos/visitor-") and path.endswith(".png")
    assert (upload_root / path[len("/uploads/"):]).is_file()


def test_size_limit(upload_root, png_data_url):
    with pytest.raises(ValidationError, match="limit"):
        save_data_url(png_data_url, root=upload_root, subdir="photos", prefix="visitor", max_bytes=10)


@pytest.mark.parametrize("value", ["data:text/plain;base64,aGVsbG8=", "not a data url", ""])
def test_only_images_are_accepted(upload_root, value):
    with pytest.raises(ValidationError):
        save_data_url(value, root=upload_root, subdir="photos", prefix="visitor")


def test_maybe_save_passes_through_paths(upload_root):
    assert maybe_save_data_url("/uploads/photos/old.png", root=upload_root, subdir="photos", prefix="v") == "/uploads/photos/old.png"
    assert maybe_save_data_url("", root=upload_root, subdir="photos", prefix="v") is None


def test_delete_upload_stays_inside_root(tmp_path, upload_root, png_data_url):
    path = save_data_url(png_data_url, root=upload_root, subdir="photos", prefix="visitor")
    outside = tmp_path / "secret.txt"
    outside.write_text("keep")

    assert delete_upload("/uploads/../secret.txt", root=upload_root) is False
    assert outside.exists()
    assert delete_upload(path, root=upload_root) is True
    assert delete_upload(path, root=upload_root) is False

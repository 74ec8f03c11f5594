import pytest

from errors import FormValidationError
from storage import FileStorage, cover_image_path, menu_image_path, safe_filename


def test_upload_writes_file_and_returns_url(tmp_path):
    storage = FileStorage(str(tmp_path), "/media/")
    url = storage.upload(menu_image_path("rest1", "item1", "pizza.jpg"), b"image")
    assert url == "/media/restaurants/rest1/menu/item1/pizza.jpg"
    assert (tmp_path / "restaurants" / "rest1" / "menu" / "item1" / "pizza.jpg").read_bytes() == b"image"


def test_upload_overwrites(tmp_path):
    storage = FileStorage(str(tmp_path))
    path = cover_image_path("rest1", "cover.png")
    storage.upload(path, b"old")
    storage.upload(path, b"new")
    assert (tmp_path / path).read_bytes() == b"new"
    assert storage.delete(path) is True
    assert storage.delete(path) is False


@pytest.mark.parametrize("path", ["../escape.txt", "/etc/passwd", "restaurants/../../x", ""])
def test_rejects_paths_outside_root(tmp_path, path):
    with pytest.raises(FormValidationError):
        FileStorage(str(tmp_path)).upload(path, b"x")


def test_safe_filename():
    assert safe_filename("../../menu photo.jpg") == "menu_photo.jpg"
    assert safe_filename(None) == "upload"
    assert safe_filename("...") == "upload"

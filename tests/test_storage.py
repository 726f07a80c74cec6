import pytest

from backoffice.config import Settings
from backoffice.utils.storage import LocalFileStorage, SpacesStorage, StorageError, build_storage


@pytest.mark.asyncio
async def test_local_put_get_delete(tmp_path):
    storage = LocalFileStorage(str(tmp_path))

    key = await storage.put("/invoices/a.pdf", b"%PDF", "application/pdf")

    assert key == "invoices/a.pdf"
    assert (tmp_path / "invoices" / "a.pdf").read_bytes() == b"%PDF"
    assert await storage.get(key) == b"%PDF"

    await storage.delete(key)
    await storage.delete(key)
    with pytest.raises(StorageError, match="not found"):
        await storage.get(key)


@pytest.mark.asyncio
async def test_local_write_failure_is_wrapped(tmp_path):
    storage = LocalFileStorage(str(tmp_path))
    # a directory where the file should go makes open() fail
    (tmp_path / "invoices" / "a.pdf").mkdir(parents=True)

    with pytest.raises(StorageError, match="Could not store file") as excinfo:
        await storage.put("invoices/a.pdf", b"%PDF", "application/pdf")
    assert isinstance(excinfo.value.__cause__, OSError)


@pytest.mark.asyncio
async def test_keys_cannot_escape_upload_dir(tmp_path):
    storage = LocalFileStorage(str(tmp_path / "uploads"))
    with pytest.raises(StorageError, match="Invalid storage key"):
        await storage.put("../secrets.txt", b"x", "text/plain")


def test_build_storage(tmp_path):
    local = build_storage(Settings(_env_file=None, upload_dir=str(tmp_path)))
    assert isinstance(local, LocalFileStorage)

    with pytest.raises(StorageError, match="not fully configured"):
        build_storage(Settings(_env_file=None, storage_backend="spaces", spaces_bucket="b"))

    spaces = build_storage(Settings(
        _env_file=None,
        storage_backend="spaces",
        spaces_key="k",
        spaces_secret="s",
        spaces_bucket="b",
        spaces_endpoint="https://nyc3.digitaloceanspaces.com",
    ))
    assert isinstance(spaces, SpacesStorage)

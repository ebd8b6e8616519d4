"""Tests for handing rendered clips to storage."""
import pytest

from conftest import FakeS3Client
from clipforge.errors import TranscodeFailure
from clipforge.models import StorageTier
from clipforge.pipeline.persist import persist_clip
from clipforge.services.storage_service import StorageTieringService


@pytest.mark.asyncio
async def test_upload_failure_keeps_clip_local(remote_config, addressing):
    storage = StorageTieringService(remote_config, client=FakeS3Client(fail_puts=1))
    identity = addressing.new_identity()
    path = addressing.local_path(identity)
    path.write_bytes(b"clip")

    locations, error = await persist_clip(storage, addressing, identity, path)

    assert error
    assert [loc.tier for loc in locations] == [StorageTier.LOCAL]
    assert path.exists()


@pytest.mark.asyncio
@pytest.mark.parametrize("storage_fixture", ["local_storage", "remote_storage"])
async def test_missing_rendered_clip(storage_fixture, addressing, request):
    storage = request.getfixturevalue(storage_fixture)
    identity = addressing.new_identity()

    with pytest.raises(TranscodeFailure, match="missing"):
        await persist_clip(storage, addressing, identity, addressing.local_path(identity))

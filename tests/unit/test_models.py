"""Unit tests for stored record and message models."""

from artwork_pipeline.models.domain import ArtworkRecord, IdentityRecord, ImageEntry, ImageMetadata
from artwork_pipeline.models.messages import InvocationResult


class TestImageEntry:
    def test_to_item_uses_stored_names(self):
        entry = ImageEntry(
            derived_key="u/a/i/p.jpg",
            raw_key="u/a/i/p.png",
            image_id="i",
            filename="p.png",
            metadata=ImageMetadata(format="png", width=4, height=3, color_space="srgb", size_bytes=99),
        )

        assert entry.to_item() == {
            "key": "u/a/i/p.jpg",
            "raw-key": "u/a/i/p.png",
            "uuid": "i",
            "filename": "p.png",
            "metadata": {"format": "png", "width": 4, "height": 3, "space": "srgb", "size": 99},
        }

    def test_legacy_item_parses(self):
        """Entries from older releases carry only a key."""
        entry = ImageEntry.model_validate({"key": "u/a/i/p.png"})
        assert entry.derived_key == "u/a/i/p.png"
        assert entry.raw_key is None
        assert entry.metadata is None


def test_artwork_record_from_item():
    record = ArtworkRecord.model_validate(
        {"uref": "ref-A", "uuid": "art1", "images": [{"key": "k", "raw-key": "r"}], "title": "ignored"}
    )
    assert record.internal_ref == "ref-A"
    assert record.images[0].raw_key == "r"


def test_identity_record_aliases():
    record = IdentityRecord.model_validate({"sub": "userA", "uref": "ref-A"})
    assert record.to_item() == {"sub": "userA", "uref": "ref-A"}


class TestInvocationResult:
    def test_ok(self):
        result = InvocationResult(message="done")
        assert result.ok and not result.retriable
        assert result.model_dump(by_alias=True, exclude_none=True) == {"statusCode": 200, "message": "done"}

    def test_retriable_failure(self):
        result = InvocationResult(status_code=503, error={"retriable": True})
        assert not result.ok
        assert result.retriable

"""Pytest configuration and fixtures."""

import io
import logging

import pytest
import pytest_asyncio
from PIL import Image

from artwork_pipeline.application import PipelineApplication
from artwork_pipeline.config import PipelineConfig
from artwork_pipeline.stores.memory import InMemoryDocumentStore, InMemoryStorageGateway


# Configure pytest-asyncio to auto-detect async tests
pytest_plugins = ("pytest_asyncio",)


def pytest_configure(config: pytest.Config) -> None:
    """Keep image codec and AWS SDK debug output out of test logs."""
    for name in ["PIL", "botocore", "boto3"]:
        logging.getLogger(name).setLevel(logging.WARNING)


@pytest.fixture
def anyio_backend():
    """Use asyncio as the async backend."""
    return "asyncio"


@pytest.fixture
def config() -> PipelineConfig:
    """Default configuration without file logging."""
    return PipelineConfig(error_log_file_enabled=False, localstack_endpoint=None)


@pytest.fixture
def storage() -> InMemoryStorageGateway:
    return InMemoryStorageGateway()


@pytest.fixture
def documents() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def seeded_documents(documents: InMemoryDocumentStore, config: PipelineConfig) -> InMemoryDocumentStore:
    """Identity ``userA -> ref-A`` and an empty artwork ``art1``."""
    documents.put_item(config.identity_table, ["sub"], {"sub": "userA", "uref": "ref-A"})
    documents.put_item(
        config.artwork_table,
        ["uref", "uuid"],
        {"uref": "ref-A", "uuid": "art1", "images": []},
    )
    return documents


@pytest.fixture
def app(
    config: PipelineConfig,
    storage: InMemoryStorageGateway,
    seeded_documents: InMemoryDocumentStore,
) -> PipelineApplication:
    """Application wired against in-memory stores."""
    return PipelineApplication(config, storage=storage, documents=seeded_documents)


@pytest.fixture
def make_image():
    """Factory for encoded test images.

    Usage: ``make_image(800, 600, color=(200, 10, 10), fmt="JPEG")``.
    """

    def _make(
        width: int,
        height: int,
        color: tuple[int, ...] = (200, 30, 30),
        fmt: str = "JPEG",
        mode: str = "RGB",
    ) -> bytes:
        image = Image.new(mode, (width, height), color)
        out = io.BytesIO()
        image.save(out, format=fmt)
        return out.getvalue()

    return _make


@pytest.fixture
def decode():
    """Decode encoded image bytes into a loaded PIL image."""

    def _decode(data: bytes) -> Image.Image:
        image = Image.open(io.BytesIO(data))
        image.load()
        return image

    return _decode

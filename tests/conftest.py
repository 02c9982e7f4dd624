import logging

import pytest

from disk_images import build_classic_image, build_gpt_image, gpt_entry


@pytest.fixture(autouse=True)
def reset_diskmap_logger():
    """Drop handlers DiskMapApp attaches so each test starts clean"""
    yield
    logger = logging.getLogger("diskmap")
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


@pytest.fixture
def classic_image_path(tmp_path):
    path = tmp_path / "classic.img"
    path.write_bytes(build_classic_image())
    return path


@pytest.fixture
def gpt_image_path(tmp_path):
    path = tmp_path / "gpt.img"
    path.write_bytes(build_gpt_image([gpt_entry(name='root', attributes=1 << 63)]))
    return path

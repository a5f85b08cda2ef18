"""
Pytest configuration for local imports and shared fixtures.
"""

# Standard Library
import os
import pathlib
import sys

# PIP3 modules
import PIL.Image
import pytest

#============================================


def _ensure_repo_on_path() -> None:
	"""
	Ensure the repository root is on sys.path.
	"""
	repo_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
	if repo_root not in sys.path:
		sys.path.insert(0, repo_root)


_ensure_repo_on_path()

FIXTURES_DIR = pathlib.Path(__file__).resolve().parent / "fixtures"

RED = (255, 0, 0, 255)
WHITE = (255, 255, 255, 255)
BLACK = (0, 0, 0, 255)


class FakeRenderer:
	"""
	Renderer returning solid fixed-size bitmaps and recording its calls.
	"""

	def __init__(self, width: int = 100, height: int = 40, color: tuple = RED):
		self.width = width
		self.height = height
		self.color = color
		self.calls: list[tuple[str, int]] = []

	def render(self, text: str, size: int) -> PIL.Image.Image:
		self.calls.append((text, size))
		return PIL.Image.new("RGBA", (self.width, self.height), self.color)


#============================================
def make_image(width: int, height: int, color: tuple = WHITE) -> PIL.Image.Image:
	"""
	Build a solid RGBA test image.

	Args:
		width: Image width.
		height: Image height.
		color: Fill color.

	Returns:
		RGBA image.
	"""
	return PIL.Image.new("RGBA", (width, height), color)


@pytest.fixture
def fake_renderer() -> FakeRenderer:
	return FakeRenderer()


@pytest.fixture
def fixtures_dir() -> pathlib.Path:
	return FIXTURES_DIR


@pytest.fixture
def source_png(tmp_path: pathlib.Path) -> pathlib.Path:
	"""
	Write a 200x200 PNG with a distinct top-left pixel.
	"""
	image = make_image(200, 200)
	image.putpixel((0, 0), (10, 20, 30, 255))
	image.putpixel((100, 100), (40, 50, 60, 255))
	path = tmp_path / "source.png"
	image.save(path, format="PNG")
	return path

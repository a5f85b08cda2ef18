"""
Shared configuration, constants and record types.
"""

import dataclasses


PROGRAM_NAME = "diagram"

DEFAULT_PORT = 8080
DEFAULT_HOST = "127.0.0.1"
DEFAULT_VIEWER = "xdg-open"

# grid label font size is sqrt(width * height) divided by this
GRID_LABEL_DIVISOR = 100

FOREGROUND_COLOR = (0, 0, 0, 255)
TRANSPARENT_COLOR = (0, 0, 0, 0)

MIN_FONT_SIZE = 1
SUBSCRIPT_SCALE = 0.7
SUBSCRIPT_DROP = 0.3

IMAGE_MODE = "RGBA"
IMAGE_FORMAT = "PNG"
TEMP_PREFIX = "diagram"
TEMP_SUFFIX = ".png"
NEW_FILE_MODE = 0o644

CAPTION_FIELD_COUNT = 3
QUERY_CAPTION_FIELD_COUNT = 4
GRID_FIELD_COUNT = 2
CROP_FIELD_COUNT = 4


@dataclasses.dataclass(frozen=True)
class Caption:
	text: str
	size: int
	position: tuple[int, int]
	source_text: str = ""


@dataclasses.dataclass(frozen=True)
class GridSpec:
	horizontal_lines: int
	vertical_lines: int


@dataclasses.dataclass(frozen=True)
class CropRect:
	left: int
	top: int
	right: int
	bottom: int

	@property
	def width(self) -> int:
		return self.right - self.left

	@property
	def height(self) -> int:
		return self.bottom - self.top

	def as_box(self) -> tuple[int, int, int, int]:
		return (self.left, self.top, self.right, self.bottom)


@dataclasses.dataclass
class WebConfig:
	host: str
	port: int
	open_browser: bool
	debug: bool


@dataclasses.dataclass
class DiagramConfig:
	image_path: str
	caption_path: str | None
	output_path: str | None
	grid: GridSpec | None
	crop: CropRect | None
	interactive: bool
	debug: bool
	font_path: str | None
	viewer: str
	web: WebConfig | None = None

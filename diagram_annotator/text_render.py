"""
Text rendering into tightly cropped transparent glyph bitmaps.
"""

# Standard Library
import re
from typing import Protocol

# PIP3 modules
import PIL.Image
import PIL.ImageDraw
import PIL.ImageFont

# local repo modules
import diagram_annotator as da
import diagram_annotator.config
import diagram_annotator.errors


RenderFailure = da.errors.RenderFailure

FOREGROUND_COLOR = da.config.FOREGROUND_COLOR
TRANSPARENT_COLOR = da.config.TRANSPARENT_COLOR
IMAGE_MODE = da.config.IMAGE_MODE
MIN_FONT_SIZE = da.config.MIN_FONT_SIZE
SUBSCRIPT_SCALE = da.config.SUBSCRIPT_SCALE
SUBSCRIPT_DROP = da.config.SUBSCRIPT_DROP

SUBSCRIPT_MARKUP_PATTERN = re.compile(r"<sub>(.*?)</sub>", re.DOTALL)


class TextRenderer(Protocol):
	def render(self, text: str, size: int) -> PIL.Image.Image: ...


#============================================
def split_markup(text: str) -> list[tuple[str, bool]]:
	"""
	Split markup text into plain and subscript runs.

	Args:
		text: Text that may contain <sub>...</sub> spans.

	Returns:
		List of (run_text, is_subscript) in reading order, empty runs dropped.
	"""
	runs = []
	cursor = 0
	for match in SUBSCRIPT_MARKUP_PATTERN.finditer(text):
		if match.start() > cursor:
			runs.append((text[cursor:match.start()], False))
		if match.group(1):
			runs.append((match.group(1), True))
		cursor = match.end()
	if cursor < len(text):
		runs.append((text[cursor:], False))
	return runs


class PillowTextRenderer:
	"""
	Render markup text with Pillow, one point per pixel.

	Subscript runs are drawn with a smaller font and a lowered baseline.
	Without a font path the scalable Pillow default font is used.
	"""

	def __init__(self, font_path: str | None = None, color: tuple[int, int, int, int] = FOREGROUND_COLOR):
		self.font_path = font_path
		self.color = color

	#============================================
	def load_font(self, size: float) -> PIL.ImageFont.FreeTypeFont:
		"""
		Load the configured font at a pixel size.

		Args:
			size: Font size in points.

		Returns:
			Pillow font object.
		"""
		pixel_size = max(MIN_FONT_SIZE, int(round(size)))
		try:
			if self.font_path:
				return PIL.ImageFont.truetype(self.font_path, pixel_size)
			return PIL.ImageFont.load_default(size=pixel_size)
		except OSError as error:
			raise RenderFailure(f"cannot load font {self.font_path!r} at size {pixel_size}: {error}") from error

	#============================================
	def render(self, text: str, size: int) -> PIL.Image.Image:
		"""
		Render markup text to a transparent RGBA bitmap.

		Args:
			text: Markup text.
			size: Font size in points.

		Returns:
			RGBA image bounded by the ink of the rendered text.
		"""
		runs = split_markup(text)
		if not runs:
			raise RenderFailure(f"nothing to render for text {text!r}")
		main_font = self.load_font(size)
		sub_font = None
		sub_drop = int(round(size * SUBSCRIPT_DROP))

		placements = []
		ink_box = None
		pen_x = 0.0
		for run_text, is_subscript in runs:
			font = main_font
			baseline = 0
			if is_subscript:
				if sub_font is None:
					sub_font = self.load_font(size * SUBSCRIPT_SCALE)
				font = sub_font
				baseline = sub_drop
			left, top, right, bottom = font.getbbox(run_text, anchor="ls")
			placements.append((pen_x, baseline, run_text, font))
			if right > left and bottom > top:
				run_box = (pen_x + left, baseline + top, pen_x + right, baseline + bottom)
				if ink_box is None:
					ink_box = run_box
				else:
					ink_box = (
						min(ink_box[0], run_box[0]),
						min(ink_box[1], run_box[1]),
						max(ink_box[2], run_box[2]),
						max(ink_box[3], run_box[3]),
					)
			pen_x += font.getlength(run_text)

		if ink_box is None:
			raise RenderFailure(f"text {text!r} rendered no visible glyphs")
		origin_x = int(ink_box[0])
		origin_y = int(ink_box[1])
		width = int(round(ink_box[2])) - origin_x
		height = int(round(ink_box[3])) - origin_y
		if width <= 0 or height <= 0:
			raise RenderFailure(f"text {text!r} rendered an empty bitmap")

		bitmap = PIL.Image.new(IMAGE_MODE, (width, height), TRANSPARENT_COLOR)
		draw = PIL.ImageDraw.Draw(bitmap)
		for pen_x, baseline, run_text, font in placements:
			draw.text(
				(pen_x - origin_x, baseline - origin_y),
				run_text,
				font=font,
				fill=self.color,
				anchor="ls",
			)
		return bitmap

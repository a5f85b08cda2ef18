"""
Grid, caption and crop transforms on in-memory RGBA images.
"""

# Standard Library
import math
import os
import pathlib
import shlex
import shutil
import subprocess
import tempfile

# PIP3 modules
import PIL.Image

# local repo modules
import diagram_annotator as da
import diagram_annotator.config
import diagram_annotator.errors
import diagram_annotator.text_render


Caption = da.config.Caption
GridSpec = da.config.GridSpec
CropRect = da.config.CropRect
TextRenderer = da.text_render.TextRenderer

InvalidGridSpec = da.errors.InvalidGridSpec
InvalidCropRect = da.errors.InvalidCropRect
MissingSourceImage = da.errors.MissingSourceImage
ImageDecodeFailure = da.errors.ImageDecodeFailure
ImageWriteFailure = da.errors.ImageWriteFailure
RenderFailure = da.errors.RenderFailure
ViewerFailure = da.errors.ViewerFailure

FOREGROUND_COLOR = da.config.FOREGROUND_COLOR
GRID_LABEL_DIVISOR = da.config.GRID_LABEL_DIVISOR
IMAGE_MODE = da.config.IMAGE_MODE
IMAGE_FORMAT = da.config.IMAGE_FORMAT
TEMP_PREFIX = da.config.TEMP_PREFIX
TEMP_SUFFIX = da.config.TEMP_SUFFIX
NEW_FILE_MODE = da.config.NEW_FILE_MODE


#============================================
def compute_label_font_size(width: int, height: int) -> int:
	"""
	Compute the grid label font size from the image area.

	Args:
		width: Image width in pixels.
		height: Image height in pixels.

	Returns:
		Font size in points.
	"""
	return math.isqrt(width * height) // GRID_LABEL_DIVISOR


#============================================
def compute_grid_step(length: int, lines: int) -> int:
	"""
	Compute the spacing between grid lines along one axis.

	Zero lines still yields a step of length - 1, which places one line on
	the last row or column.

	Args:
		length: Image height (horizontal lines) or width (vertical lines).
		lines: Requested number of lines.

	Returns:
		Step in pixels.
	"""
	if lines < 0:
		raise InvalidGridSpec(f"grid line count {lines} is negative")
	if lines > 0:
		return length // lines
	return length - 1


#============================================
def compute_grid_offsets(length: int, lines: int) -> list[int]:
	"""
	Compute grid line offsets along one axis.

	Offsets are step, 2*step, ... strictly below length, so a line that
	would fall on the far edge is omitted.

	Args:
		length: Image height or width in pixels.
		lines: Requested number of lines.

	Returns:
		List of pixel offsets.
	"""
	step = compute_grid_step(length, lines)
	if step <= 0:
		if lines > 0:
			raise InvalidGridSpec(f"{lines} grid lines do not fit in {length} pixels")
		return []
	return list(range(step, length, step))


#============================================
def compute_caption_box(position: tuple[int, int], label_size: tuple[int, int]) -> tuple[int, int, int, int]:
	"""
	Compute the target rectangle that centers a label on a point.

	Args:
		position: Caption anchor (x, y).
		label_size: Rendered label (width, height).

	Returns:
		Box (left, top, right, bottom).
	"""
	x, y = position
	half_width = label_size[0] // 2
	half_height = label_size[1] // 2
	return (x - half_width, y - half_height, x + half_width, y + half_height)


#============================================
def composite_over(image: PIL.Image.Image, label: PIL.Image.Image, box: tuple[int, int, int, int]) -> PIL.Image.Image:
	"""
	Blend a label over the image inside a target box, clipped to the image.

	The label's top-left pixel maps to the box's top-left corner. Parts of
	the box outside the image or beyond the label are dropped.

	Args:
		image: Destination RGBA image, modified in place.
		label: Source image.
		box: Target box (left, top, right, bottom).

	Returns:
		The destination image.
	"""
	if label.mode != IMAGE_MODE:
		label = label.convert(IMAGE_MODE)
	left, top, right, bottom = box
	clip_left = max(left, 0)
	clip_top = max(top, 0)
	clip_right = min(right, image.width, left + label.width)
	clip_bottom = min(bottom, image.height, top + label.height)
	if clip_right <= clip_left or clip_bottom <= clip_top:
		return image
	source_box = (clip_left - left, clip_top - top, clip_right - left, clip_bottom - top)
	image.alpha_composite(label, dest=(clip_left, clip_top), source=source_box)
	return image


#============================================
def render_label(renderer: TextRenderer, text: str, size: int) -> PIL.Image.Image:
	"""
	Render text through the renderer and check the result.

	Args:
		renderer: Text renderer.
		text: Markup text.
		size: Font size in points.

	Returns:
		RGBA label image.
	"""
	label = renderer.render(text, size)
	if label is None or label.width <= 0 or label.height <= 0:
		raise RenderFailure(f"renderer returned no bitmap for {text!r} at size {size}")
	return label


#============================================
def draw_grid(
	image: PIL.Image.Image,
	spec: GridSpec,
	renderer: TextRenderer,
	verbose: bool = False,
) -> PIL.Image.Image:
	"""
	Draw labeled grid lines on the image.

	Each label is composited first and the line painted over it afterwards.

	Args:
		image: RGBA image, modified in place.
		spec: Grid line counts.
		renderer: Text renderer for the offset labels.
		verbose: Print grid geometry.

	Returns:
		The same image.
	"""
	width, height = image.size
	font_size = compute_label_font_size(width, height)
	rows = compute_grid_offsets(height, spec.horizontal_lines)
	columns = compute_grid_offsets(width, spec.vertical_lines)
	if verbose:
		print(f"Grid: {len(rows)} rows, {len(columns)} columns, label size {font_size}")

	for row in rows:
		label = render_label(renderer, f"{row}", font_size)
		composite_over(image, label, (0, row, label.width, row + label.height))
		image.paste(FOREGROUND_COLOR, (0, row, width, row + 1))

	for column in columns:
		label = render_label(renderer, f"{column}", font_size)
		composite_over(image, label, (column, 0, column + label.width, label.height))
		image.paste(FOREGROUND_COLOR, (column, 0, column + 1, height))
	return image


#============================================
def draw_caption(image: PIL.Image.Image, caption: Caption, renderer: TextRenderer) -> PIL.Image.Image:
	"""
	Draw one caption centered on its position.

	Args:
		image: RGBA image, modified in place.
		caption: Caption record.
		renderer: Text renderer.

	Returns:
		The same image.
	"""
	label = render_label(renderer, caption.text, caption.size)
	box = compute_caption_box(caption.position, label.size)
	return composite_over(image, label, box)


#============================================
def crop_image(image: PIL.Image.Image, rect: CropRect) -> PIL.Image.Image:
	"""
	Copy a sub-rectangle of the image.

	Args:
		image: Source image.
		rect: Crop rectangle in source pixel space.

	Returns:
		New image of size (right - left, bottom - top).
	"""
	if rect.right <= rect.left or rect.bottom <= rect.top:
		raise InvalidCropRect(f"empty crop rectangle {rect.as_box()}")
	if rect.left < 0 or rect.top < 0 or rect.right > image.width or rect.bottom > image.height:
		raise InvalidCropRect(
			f"crop rectangle {rect.as_box()} is outside the {image.width}x{image.height} image"
		)
	return image.crop(rect.as_box())


#============================================
def load_image(path: str | pathlib.Path) -> PIL.Image.Image:
	"""
	Load a PNG image as RGBA.

	Args:
		path: Image path.

	Returns:
		RGBA image.
	"""
	path = pathlib.Path(path)
	if not path.is_file():
		raise MissingSourceImage(f"source image {str(path)!r} not found")
	try:
		with PIL.Image.open(path, formats=[IMAGE_FORMAT]) as handle:
			handle.load()
			image = handle.convert(IMAGE_MODE)
	except (OSError, ValueError, PIL.Image.DecompressionBombError) as error:
		raise ImageDecodeFailure(f"cannot decode {str(path)!r} as {IMAGE_FORMAT}: {error}") from error
	return image


#============================================
def save_image(image: PIL.Image.Image, path: str | pathlib.Path) -> pathlib.Path:
	"""
	Write the image as PNG.

	The PNG is written to a temporary file next to the target and moved
	into place, so a failed save leaves any existing file untouched.

	Args:
		image: Image to write.
		path: Output path.

	Returns:
		Output path.
	"""
	path = pathlib.Path(path)
	if path.is_dir():
		raise ImageWriteFailure(f"cannot write {str(path)!r}: is a directory")
	try:
		handle = tempfile.NamedTemporaryFile(
			prefix=TEMP_PREFIX,
			suffix=TEMP_SUFFIX,
			dir=path.parent,
			delete=False,
		)
	except OSError as error:
		raise ImageWriteFailure(f"cannot write {str(path)!r}: {error}") from error
	handle.close()
	partial = pathlib.Path(handle.name)
	try:
		image.save(partial, format=IMAGE_FORMAT)
		if path.exists():
			shutil.copymode(path, partial)
		else:
			os.chmod(partial, NEW_FILE_MODE)
		os.replace(partial, path)
	except (OSError, ValueError) as error:
		partial.unlink(missing_ok=True)
		raise ImageWriteFailure(f"cannot write {str(path)!r}: {error}") from error
	return path


#============================================
def display_image(image: PIL.Image.Image, viewer: str) -> None:
	"""
	Show the image with an external viewer through a temporary file.

	The temporary file is removed once the viewer command returns.

	Args:
		image: Image to show.
		viewer: Viewer command, split with shell rules.
	"""
	handle = tempfile.NamedTemporaryFile(prefix=TEMP_PREFIX, suffix=TEMP_SUFFIX, delete=False)
	handle.close()
	try:
		save_image(image, handle.name)
		command = shlex.split(viewer) + [handle.name]
		try:
			result = subprocess.run(command, check=False)
		except OSError as error:
			raise ViewerFailure(f"cannot run viewer {viewer!r}: {error}") from error
		if result.returncode != 0:
			raise ViewerFailure(f"viewer {viewer!r} exited with status {result.returncode}")
	finally:
		if os.path.exists(handle.name):
			os.remove(handle.name)

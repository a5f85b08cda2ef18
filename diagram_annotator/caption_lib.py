"""
Caption file parsing and serialization, plus grid and crop spec strings.
"""

# Standard Library
import pathlib
import re
from collections.abc import Iterable

# local repo modules
import diagram_annotator as da
import diagram_annotator.config
import diagram_annotator.errors


Caption = da.config.Caption
GridSpec = da.config.GridSpec
CropRect = da.config.CropRect

MalformedCaptionLine = da.errors.MalformedCaptionLine
MalformedCaptionCoordinates = da.errors.MalformedCaptionCoordinates
CaptionFileError = da.errors.CaptionFileError
InvalidGridSpec = da.errors.InvalidGridSpec
InvalidCropRect = da.errors.InvalidCropRect

CAPTION_FIELD_COUNT = da.config.CAPTION_FIELD_COUNT
QUERY_CAPTION_FIELD_COUNT = da.config.QUERY_CAPTION_FIELD_COUNT
GRID_FIELD_COUNT = da.config.GRID_FIELD_COUNT
CROP_FIELD_COUNT = da.config.CROP_FIELD_COUNT

# LaTeX-style subscripts: H_2 -> H<sub>2</sub>
SUBSCRIPT_PATTERN = re.compile(r"_([0-9]+)")
INTEGER_PATTERN = re.compile(r"^[+-]?[0-9]+$")


#============================================
def rewrite_subscripts(text: str) -> str:
	"""
	Rewrite every underscore-digit run into subscript markup.

	Args:
		text: Caption text as written in the caption file.

	Returns:
		Markup text for the renderer.
	"""
	return SUBSCRIPT_PATTERN.sub(r"<sub>\1</sub>", text)


#============================================
def parse_int(value: str) -> int | None:
	"""
	Parse a plain signed decimal integer.

	Args:
		value: Field text.

	Returns:
		Integer value, or None if the text is not an integer.
	"""
	value = value.strip()
	if not INTEGER_PATTERN.match(value):
		return None
	return int(value)


#============================================
def parse_position(field: str, line_number: int) -> tuple[int, int]:
	"""
	Parse an "x,y" caption position.

	Args:
		field: Position field.
		line_number: Source line number for error messages.

	Returns:
		Tuple of (x, y).
	"""
	parts = field.split(",")
	if len(parts) != 2:
		raise MalformedCaptionCoordinates(line_number, field)
	x = parse_int(parts[0])
	y = parse_int(parts[1])
	if x is None or y is None:
		raise MalformedCaptionCoordinates(line_number, field)
	return (x, y)


#============================================
def parse_caption_fields(fields: list[str], line_number: int = 1) -> Caption:
	"""
	Build a caption from the three fields of one caption line.

	Args:
		fields: List of [text, size, "x,y"].
		line_number: Source line number for error messages.

	Returns:
		Caption record.
	"""
	if len(fields) != CAPTION_FIELD_COUNT:
		raise MalformedCaptionLine(
			line_number,
			f"expected {CAPTION_FIELD_COUNT} fields, found {len(fields)}",
		)
	text, size_field, position_field = fields
	size = parse_int(size_field)
	if size is None:
		raise MalformedCaptionLine(line_number, f"size {size_field!r} is not an integer")
	if size <= 0:
		raise MalformedCaptionLine(line_number, f"size {size} must be positive")
	# coordinate errors are not recoverable, unlike size errors
	position = parse_position(position_field, line_number)
	return Caption(
		text=rewrite_subscripts(text),
		size=size,
		position=position,
		source_text=text,
	)


#============================================
def parse_caption_lines(lines: Iterable[str], verbose: bool = True) -> list[Caption]:
	"""
	Parse caption lines of the form "text size x,y".

	Lines with the wrong field count or a bad size are skipped. A malformed
	position aborts the whole parse with MalformedCaptionCoordinates.

	Args:
		lines: Caption lines.
		verbose: Print a warning for each skipped line.

	Returns:
		Captions in input order.
	"""
	captions = []
	for line_number, line in enumerate(lines, start=1):
		fields = line.split()
		if not fields:
			continue
		try:
			caption = parse_caption_fields(fields, line_number)
		except MalformedCaptionLine as error:
			if verbose:
				print(f"Skipping {error}")
			continue
		captions.append(caption)
	return captions


#============================================
def read_caption_file(path: str | pathlib.Path, verbose: bool = True) -> list[Caption]:
	"""
	Read and parse a UTF-8 caption file.

	Args:
		path: Caption file path.
		verbose: Print a warning for each skipped line.

	Returns:
		Captions in file order.
	"""
	path = pathlib.Path(path)
	try:
		text = path.read_text(encoding="utf-8")
	except (OSError, UnicodeDecodeError) as error:
		raise CaptionFileError(f"cannot read caption file {str(path)!r}: {error}") from error
	return parse_caption_lines(text.splitlines(), verbose=verbose)


#============================================
def format_caption_line(caption: Caption) -> str:
	"""
	Serialize a caption back into caption-file form.

	Args:
		caption: Caption record.

	Returns:
		Line text without a trailing newline.
	"""
	text = caption.source_text or caption.text
	x, y = caption.position
	return f"{text} {caption.size} {x},{y}"


#============================================
def write_caption_file(path: str | pathlib.Path, captions: Iterable[Caption]) -> None:
	"""
	Write captions to a caption file, one per line.

	Args:
		path: Output path.
		captions: Captions to write.
	"""
	path = pathlib.Path(path)
	lines = [format_caption_line(caption) + "\n" for caption in captions]
	try:
		with path.open("w", encoding="utf-8") as handle:
			handle.writelines(lines)
	except OSError as error:
		raise CaptionFileError(f"cannot write caption file {str(path)!r}: {error}") from error


#============================================
def parse_query_caption(value: str, index: int = 1) -> Caption:
	"""
	Parse the comma-joined "text,size,x,y" form sent by the browser UI.

	Args:
		value: Query value.
		index: Position of the value in the request, for error messages.

	Returns:
		Caption record.
	"""
	parts = value.split(",")
	if len(parts) != QUERY_CAPTION_FIELD_COUNT:
		raise MalformedCaptionLine(
			index,
			f"expected {QUERY_CAPTION_FIELD_COUNT} comma-separated fields, found {len(parts)}",
		)
	fields = [parts[0].strip(), parts[1].strip(), f"{parts[2].strip()},{parts[3].strip()}"]
	return parse_caption_fields(fields, index)


#============================================
def parse_grid_spec(value: str) -> GridSpec:
	"""
	Parse an "h,v" grid spec string.

	Blank fields count as zero lines.

	Args:
		value: Grid spec string.

	Returns:
		GridSpec.
	"""
	parts = value.split(",")
	if len(parts) != GRID_FIELD_COUNT:
		raise InvalidGridSpec(f"malformed grid argument {value!r}, expected h,v")
	counts = []
	for part in parts:
		if not part.strip():
			counts.append(0)
			continue
		count = parse_int(part)
		if count is None or count < 0:
			raise InvalidGridSpec(f"malformed grid argument {value!r}, expected non-negative integers")
		counts.append(count)
	return GridSpec(horizontal_lines=counts[0], vertical_lines=counts[1])


#============================================
def parse_crop_spec(value: str) -> CropRect:
	"""
	Parse an "l,t,r,b" crop spec string.

	Args:
		value: Crop spec string.

	Returns:
		CropRect.
	"""
	parts = value.split(",")
	if len(parts) != CROP_FIELD_COUNT:
		raise InvalidCropRect(f"malformed crop argument {value!r}, expected left,top,right,bottom")
	coords = [parse_int(part) for part in parts]
	if any(coord is None for coord in coords):
		raise InvalidCropRect(f"malformed crop argument {value!r}, expected integers")
	left, top, right, bottom = coords
	if right <= left or bottom <= top:
		raise InvalidCropRect(f"empty crop rectangle {value!r}, need left < right and top < bottom")
	return CropRect(left=left, top=top, right=right, bottom=bottom)

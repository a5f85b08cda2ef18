"""
Error types raised by the composition pipeline.
"""


class DiagramError(Exception):
	"""
	Base class for all errors reported to the user.
	"""


class MalformedCaptionLine(DiagramError):
	"""
	A caption line has the wrong field count or a bad size; the line is skipped.
	"""

	def __init__(self, line_number: int, message: str):
		self.line_number = line_number
		super().__init__(f"caption line {line_number}: {message}")


class MalformedCaptionCoordinates(DiagramError):
	"""
	A caption position is not two comma-separated integers; the parse aborts.
	"""

	def __init__(self, line_number: int, field: str):
		self.line_number = line_number
		self.field = field
		super().__init__(f"caption line {line_number}: malformed coordinates {field!r}, expected x,y")


class CaptionFileError(DiagramError):
	pass


class InvalidGridSpec(DiagramError):
	pass


class InvalidCropRect(DiagramError):
	pass


class MissingSourceImage(DiagramError):
	pass


class ImageDecodeFailure(DiagramError):
	pass


class ImageWriteFailure(DiagramError):
	pass


class RenderFailure(DiagramError):
	pass


class ViewerFailure(DiagramError):
	pass

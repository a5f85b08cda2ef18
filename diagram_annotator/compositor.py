"""
Composition pipeline: grid, then captions, then crop, then save or display.
"""

# Standard Library
import dataclasses
import pathlib

# PIP3 modules
import PIL.Image

# local repo modules
import diagram_annotator as da
import diagram_annotator.config
import diagram_annotator.render
import diagram_annotator.text_render


Caption = da.config.Caption
GridSpec = da.config.GridSpec
CropRect = da.config.CropRect
TextRenderer = da.text_render.TextRenderer

DEFAULT_VIEWER = da.config.DEFAULT_VIEWER


@dataclasses.dataclass
class CompositionRequest:
	grid: GridSpec | None = None
	captions: list[Caption] = dataclasses.field(default_factory=list)
	crop: CropRect | None = None


#============================================
def compose_image(
	image: PIL.Image.Image,
	request: CompositionRequest,
	renderer: TextRenderer,
	verbose: bool = False,
) -> PIL.Image.Image:
	"""
	Apply the grid, caption and crop stages in that order.

	Caption positions are in the pre-crop pixel space. Stages without
	settings are skipped.

	Args:
		image: RGBA image owned by this run, modified in place.
		request: Stage settings.
		renderer: Text renderer for grid labels and captions.
		verbose: Print stage progress.

	Returns:
		Composed image, a new object when a crop was applied.
	"""
	if request.grid is not None:
		if verbose:
			print(f"Drawing grid {request.grid.horizontal_lines},{request.grid.vertical_lines}")
		image = da.render.draw_grid(image, request.grid, renderer, verbose=verbose)

	if verbose and request.captions:
		print(f"Drawing {len(request.captions)} captions")
	for caption in request.captions:
		image = da.render.draw_caption(image, caption, renderer)

	if request.crop is not None:
		if verbose:
			print(f"Cropping to {request.crop.as_box()}")
		image = da.render.crop_image(image, request.crop)
	return image


#============================================
def finalize_image(
	image: PIL.Image.Image,
	output_path: str | pathlib.Path | None,
	viewer: str = DEFAULT_VIEWER,
) -> pathlib.Path | None:
	"""
	Save the image when an output path is set, otherwise display it.

	Args:
		image: Composed image.
		output_path: Output PNG path or None.
		viewer: Viewer command used when displaying.

	Returns:
		Output path, or None when the image was displayed.
	"""
	if output_path:
		return da.render.save_image(image, output_path)
	da.render.display_image(image, viewer)
	return None


#============================================
def run_composition(
	image_path: str | pathlib.Path,
	request: CompositionRequest,
	renderer: TextRenderer,
	output_path: str | pathlib.Path | None,
	viewer: str = DEFAULT_VIEWER,
	verbose: bool = False,
) -> pathlib.Path | None:
	"""
	Load, compose and finalize one image.

	Args:
		image_path: Source PNG path.
		request: Stage settings.
		renderer: Text renderer.
		output_path: Output PNG path, or None to display.
		viewer: Viewer command used when displaying.
		verbose: Print stage progress.

	Returns:
		Output path, or None when the image was displayed.
	"""
	image = da.render.load_image(image_path)
	if verbose:
		print(f"Loaded {image_path}: {image.width}x{image.height}")
	image = compose_image(image, request, renderer, verbose=verbose)
	return finalize_image(image, output_path, viewer)

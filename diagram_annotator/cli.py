"""
CLI entry points for captioning diagrams.
"""

# Standard Library
import argparse
import sys
import time

# local repo modules
import diagram_annotator as da
import diagram_annotator.caption_lib
import diagram_annotator.compositor
import diagram_annotator.config
import diagram_annotator.errors
import diagram_annotator.render
import diagram_annotator.text_render
import diagram_annotator.web


Caption = da.config.Caption
DiagramConfig = da.config.DiagramConfig
WebConfig = da.config.WebConfig
CompositionRequest = da.compositor.CompositionRequest
TextRenderer = da.text_render.TextRenderer
DiagramError = da.errors.DiagramError

PROGRAM_NAME = da.config.PROGRAM_NAME
DEFAULT_PORT = da.config.DEFAULT_PORT
DEFAULT_HOST = da.config.DEFAULT_HOST
DEFAULT_VIEWER = da.config.DEFAULT_VIEWER

DESCRIPTION = """\
Add captions and grid lines to a PNG image.

A caption file has lines of the form
    text size xpos,ypos
where text is the caption without spaces (H_2 is drawn as H with a
subscript 2), size is an integer font size in points, and xpos and ypos
are pixel coordinates of the caption center."""


#============================================
def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
	"""
	Parse command line arguments.

	Args:
		argv: Argument list, defaults to sys.argv.

	Returns:
		Parsed argparse namespace.
	"""
	parser = argparse.ArgumentParser(
		prog=PROGRAM_NAME,
		description=DESCRIPTION,
		formatter_class=argparse.RawDescriptionHelpFormatter,
	)
	parser.add_argument("image_path", help="Source PNG image.")

	input_group = parser.add_argument_group("Input")
	input_group.add_argument("-c", "--cap", dest="caption_path", default=None, help="File to read captions from.")
	input_group.add_argument("-f", "--font", dest="font_path", default=None, help="TrueType font for captions and labels.")

	output_group = parser.add_argument_group("Output")
	output_group.add_argument("-o", "--output", dest="output_path", default=None, help="Save the resulting image to file.")
	output_group.add_argument(
		"--viewer",
		dest="viewer",
		default=DEFAULT_VIEWER,
		help="Command used to display the image when no output file is given.",
	)

	behavior_group = parser.add_argument_group("Behavior")
	behavior_group.add_argument(
		"-g",
		"--grid",
		dest="grid",
		default=None,
		help="h,v: draw a grid of h horizontal and v vertical lines on the image.",
	)
	behavior_group.add_argument("-x", "--crop", dest="crop", default=None, help="Crop image to left-x,upper-y,right-x,bottom-y.")
	behavior_group.add_argument("-d", "--debug", dest="debug", action="store_true", help="Toggle debug printing.")

	web_group = parser.add_argument_group("Interactive")
	web_group.add_argument("-w", "--web", dest="web", action="store_true", help="Run the program interactively in the browser.")
	web_group.add_argument("-p", "--port", dest="port", type=int, default=DEFAULT_PORT, help="Port to run the web server on.")
	web_group.add_argument("--host", dest="host", default=DEFAULT_HOST, help="Address to bind the web server to.")
	web_group.add_argument("-t", "--test", dest="test", action="store_true", help="Do not open the server in a browser.")

	parser.set_defaults(debug=False, web=False, test=False)

	args = parser.parse_args(argv)
	return args


#============================================
def build_config(args: argparse.Namespace) -> DiagramConfig:
	"""
	Build the run configuration from CLI args.

	Grid and crop strings are parsed here so malformed values fail before
	any image is loaded.

	Args:
		args: Parsed argparse namespace.

	Returns:
		DiagramConfig.
	"""
	grid = None
	if args.grid:
		grid = da.caption_lib.parse_grid_spec(args.grid)
	crop = None
	if args.crop:
		crop = da.caption_lib.parse_crop_spec(args.crop)
	web = None
	if args.web:
		web = WebConfig(
			host=args.host,
			port=args.port,
			open_browser=not args.test,
			debug=args.debug,
		)
	return DiagramConfig(
		image_path=args.image_path,
		caption_path=args.caption_path,
		output_path=args.output_path,
		grid=grid,
		crop=crop,
		interactive=args.web,
		debug=args.debug,
		font_path=args.font_path,
		viewer=args.viewer,
		web=web,
	)


#============================================
def run_interactive(config: DiagramConfig, captions: list[Caption], renderer: TextRenderer) -> None:
	"""
	Start the browser UI for the configured image.

	Args:
		config: Run configuration.
		captions: Captions read from the caption file.
		renderer: Text renderer.
	"""
	session = da.web.InteractiveSession(
		config.image_path,
		renderer,
		captions=captions,
		caption_path=config.caption_path,
		debug=config.debug,
	)
	try:
		da.web.run_server(session, config.web)
	finally:
		session.close()


#============================================
def run_pipeline(config: DiagramConfig) -> None:
	"""
	Run the composition pipeline, or the interactive UI.

	Args:
		config: Run configuration.
	"""
	verbose = config.debug
	if verbose:
		print(f"Source image: {config.image_path}")
		if config.caption_path:
			print(f"Caption file: {config.caption_path}")
		if config.grid is not None:
			print(f"Grid: {config.grid.horizontal_lines},{config.grid.vertical_lines}")
		if config.crop is not None:
			print(f"Crop: {config.crop.as_box()}")
		print(f"Output: {config.output_path or 'viewer ' + config.viewer}")

	start_time = time.perf_counter()
	image = da.render.load_image(config.image_path)
	captions = []
	if config.caption_path:
		captions = da.caption_lib.read_caption_file(config.caption_path, verbose=True)
		if verbose:
			print(f"Captions parsed: {len(captions)}")
	renderer = da.text_render.PillowTextRenderer(font_path=config.font_path)

	if config.interactive:
		run_interactive(config, captions, renderer)
		return

	request = CompositionRequest(grid=config.grid, captions=captions, crop=config.crop)
	image = da.compositor.compose_image(image, request, renderer, verbose=verbose)
	output_path = da.compositor.finalize_image(image, config.output_path, config.viewer)
	if output_path is not None:
		print(f"Image written: {output_path}")
	if verbose:
		total_time = time.perf_counter() - start_time
		print(f"Timing: total={total_time:.2f}s")


#============================================
def main(argv: list[str] | None = None) -> None:
	"""
	Main entry point.

	Args:
		argv: Argument list, defaults to sys.argv.
	"""
	args = parse_args(argv)
	try:
		config = build_config(args)
		run_pipeline(config)
	except DiagramError as error:
		print(f"{PROGRAM_NAME}: {error}", file=sys.stderr)
		raise SystemExit(1) from error

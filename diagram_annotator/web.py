"""
Interactive browser mode: preview captions and request re-renders.
"""

# Standard Library
import contextlib
import pathlib
import shutil
import tempfile
import threading
import webbrowser

# PIP3 modules
import uvicorn
from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import FileResponse, HTMLResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates

# local repo modules
import diagram_annotator as da
import diagram_annotator.caption_lib
import diagram_annotator.compositor
import diagram_annotator.config
import diagram_annotator.errors
import diagram_annotator.render
import diagram_annotator.text_render


Caption = da.config.Caption
WebConfig = da.config.WebConfig
CompositionRequest = da.compositor.CompositionRequest
TextRenderer = da.text_render.TextRenderer

DiagramError = da.errors.DiagramError
MalformedCaptionLine = da.errors.MalformedCaptionLine
CaptionFileError = da.errors.CaptionFileError

TEMP_PREFIX = da.config.TEMP_PREFIX
TEMP_SUFFIX = da.config.TEMP_SUFFIX

PACKAGE_DIR = pathlib.Path(__file__).resolve().parent
TEMPLATES_DIR = PACKAGE_DIR / "templates"
STATIC_DIR = PACKAGE_DIR / "static"

# the UI sends these when a field is left empty
EMPTY_GRID_VALUES = ("", ",")
EMPTY_CROP_VALUES = ("", ",,,")


class InteractiveSession:
	"""
	State for one interactive session.

	Every render request is a separate pipeline run on a freshly loaded
	source image. Each run writes a new uniquely named PNG into the
	session's work directory and deletes the previous one.
	"""

	def __init__(
		self,
		image_path: str | pathlib.Path,
		renderer: TextRenderer,
		captions: list[Caption] | None = None,
		caption_path: str | None = None,
		debug: bool = False,
		base_dir: str | pathlib.Path | None = None,
	):
		self.image_path = pathlib.Path(image_path)
		self.renderer = renderer
		self.captions = list(captions or [])
		self.caption_path = caption_path or ""
		self.debug = debug
		# caption dumps may only land under this directory
		self.base_dir = pathlib.Path(base_dir or pathlib.Path.cwd()).resolve()
		self.startup_caption_path = self.resolve_path(caption_path) if caption_path else None
		self.work_dir = pathlib.Path(tempfile.mkdtemp(prefix=TEMP_PREFIX))
		self.last_artifact: pathlib.Path | None = None

	#============================================
	def resolve_path(self, path: str | pathlib.Path) -> pathlib.Path:
		"""
		Resolve a path against the session's base directory.
		"""
		return (self.base_dir / path).resolve()

	#============================================
	def check_dump_path(self, dump: str) -> pathlib.Path:
		"""
		Validate a caption dump target.

		Only the caption file given at startup, or a file under the base
		directory, may be written.

		Args:
			dump: Requested dump path, absolute or relative to the base directory.

		Returns:
			Resolved dump path.
		"""
		path = self.resolve_path(dump)
		if path == self.startup_caption_path:
			return path
		if self.base_dir not in path.parents:
			raise CaptionFileError(f"refusing to write caption file {dump!r} outside {str(self.base_dir)!r}")
		return path

	#============================================
	def parse_request_captions(self, values: list[str]) -> list[Caption]:
		"""
		Parse caption query values, skipping malformed ones.

		Args:
			values: "text,size,x,y" strings, blanks ignored.

		Returns:
			Accepted captions in request order.
		"""
		captions = []
		for index, value in enumerate(values, start=1):
			if not value:
				continue
			try:
				caption = da.caption_lib.parse_query_caption(value, index)
			except MalformedCaptionLine as error:
				if self.debug:
					print(f"Skipping {error}")
				continue
			captions.append(caption)
		return captions

	#============================================
	def build_request(self, grid: str, captions: list[Caption], crop: str) -> CompositionRequest:
		"""
		Build a composition request from query strings.

		Args:
			grid: "h,v" grid string.
			captions: Parsed captions.
			crop: "l,t,r,b" crop string.

		Returns:
			CompositionRequest.
		"""
		request = CompositionRequest(captions=captions)
		if grid not in EMPTY_GRID_VALUES:
			request.grid = da.caption_lib.parse_grid_spec(grid)
		if crop not in EMPTY_CROP_VALUES:
			request.crop = da.caption_lib.parse_crop_spec(crop)
		return request

	#============================================
	def render_request(self, grid: str, caption_values: list[str], dump: str, crop: str) -> pathlib.Path:
		"""
		Run one render request and replace the previous artifact.

		Args:
			grid: "h,v" grid string.
			caption_values: "text,size,x,y" caption strings.
			dump: Caption file to write the accepted captions to, or "".
			crop: "l,t,r,b" crop string.

		Returns:
			Path of the new artifact.
		"""
		if self.debug:
			print(f"Render request grid={grid!r} captions={caption_values!r} dump={dump!r} crop={crop!r}")
		captions = self.parse_request_captions(caption_values)
		request = self.build_request(grid, captions, crop)
		if dump:
			da.caption_lib.write_caption_file(self.check_dump_path(dump), captions)
			self.caption_path = dump
		self.captions = captions

		image = da.render.load_image(self.image_path)
		image = da.compositor.compose_image(image, request, self.renderer, verbose=self.debug)

		handle = tempfile.NamedTemporaryFile(
			prefix=TEMP_PREFIX,
			suffix=TEMP_SUFFIX,
			dir=self.work_dir,
			delete=False,
		)
		handle.close()
		artifact = pathlib.Path(handle.name)
		try:
			da.render.save_image(image, artifact)
		except DiagramError:
			artifact.unlink(missing_ok=True)
			raise

		if self.last_artifact is not None:
			self.last_artifact.unlink(missing_ok=True)
		self.last_artifact = artifact
		if self.debug:
			print(f"Generated {artifact}")
		return artifact

	#============================================
	def artifact_path(self, name: str) -> pathlib.Path | None:
		"""
		Look up the current artifact by file name.

		Args:
			name: Artifact file name.

		Returns:
			Artifact path, or None if the name is not the current artifact.
		"""
		if self.last_artifact is None or name != self.last_artifact.name:
			return None
		if not self.last_artifact.is_file():
			return None
		return self.last_artifact

	#============================================
	def close(self) -> None:
		"""
		Remove the session's work directory and artifacts.
		"""
		shutil.rmtree(self.work_dir, ignore_errors=True)
		self.last_artifact = None


#============================================
def create_app(session: InteractiveSession) -> FastAPI:
	"""
	Build the FastAPI app serving one interactive session.

	Args:
		session: Session state shared by the request handlers.

	Returns:
		FastAPI application.
	"""

	@contextlib.asynccontextmanager
	async def lifespan(app: FastAPI):
		yield
		session.close()

	app = FastAPI(title="diagram", lifespan=lifespan)
	app.state.session = session
	templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
	app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

	@app.get("/", response_class=HTMLResponse)
	def index(request: Request):
		captions = [
			{
				"text": caption.source_text or caption.text,
				"size": caption.size,
				"position": f"{caption.position[0]},{caption.position[1]}",
			}
			for caption in session.captions
		]
		return templates.TemplateResponse(
			request,
			"index.html",
			{
				"image_name": session.image_path.name,
				"captions": captions,
				"caption_path": session.caption_path,
			},
		)

	@app.get("/req", response_class=PlainTextResponse)
	def render(
		grid: str = "",
		cap: list[str] = Query(default=[]),
		dump: str = "",
		crop: str = "",
	):
		try:
			artifact = session.render_request(grid, cap, dump, crop)
		except DiagramError as error:
			raise HTTPException(status_code=400, detail=str(error)) from error
		return artifact.name

	@app.get("/source")
	def source():
		return FileResponse(session.image_path, media_type="image/png")

	@app.get("/render/{name}")
	def artifact(name: str):
		path = session.artifact_path(name)
		if path is None:
			raise HTTPException(status_code=404, detail=f"no render named {name!r}")
		return FileResponse(path, media_type="image/png")

	return app


#============================================
def run_server(session: InteractiveSession, web_config: WebConfig) -> None:
	"""
	Serve the interactive UI until interrupted.

	Args:
		session: Interactive session.
		web_config: Host, port and browser settings.
	"""
	app = create_app(session)
	url = f"http://localhost:{web_config.port}"
	print(f"running at {url}")
	if web_config.open_browser:
		threading.Timer(1.0, webbrowser.open, args=[url]).start()
	log_level = "debug" if web_config.debug else "info"
	uvicorn.run(app, host=web_config.host, port=web_config.port, log_level=log_level)

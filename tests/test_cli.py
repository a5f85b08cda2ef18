import pathlib

import PIL.Image
import pytest

import diagram_annotator.cli as cli
import diagram_annotator.text_render as text_render

from conftest import BLACK, FakeRenderer


#============================================
@pytest.fixture
def caption_file(tmp_path: pathlib.Path) -> pathlib.Path:
	path = tmp_path / "captions.cap"
	path.write_text("H_1 12 60,60\nC 12 140,140\nbroken line\n", encoding="utf-8")
	return path


#============================================
def test_build_config_parses_specs() -> None:
	args = cli.parse_args(["-g", "4,2", "-x", "0,0,10,10", "-o", "out.png", "image.png"])
	config = cli.build_config(args)
	assert config.image_path == "image.png"
	assert config.output_path == "out.png"
	assert (config.grid.horizontal_lines, config.grid.vertical_lines) == (4, 2)
	assert config.crop.as_box() == (0, 0, 10, 10)
	assert config.interactive is False
	assert config.web is None


#============================================
def test_build_config_web_settings() -> None:
	args = cli.parse_args(["--web", "--test", "--port", "9000", "image.png"])
	config = cli.build_config(args)
	assert config.interactive is True
	assert config.web.port == 9000
	assert config.web.open_browser is False


#============================================
def test_missing_image_argument_exits() -> None:
	with pytest.raises(SystemExit) as excinfo:
		cli.parse_args([])
	assert excinfo.value.code != 0


#============================================
def test_main_writes_output_with_fake_renderer(
	monkeypatch: pytest.MonkeyPatch,
	source_png: pathlib.Path,
	caption_file: pathlib.Path,
	tmp_path: pathlib.Path,
	capsys: pytest.CaptureFixture,
) -> None:
	monkeypatch.setattr(text_render, "PillowTextRenderer", lambda font_path=None: FakeRenderer(width=8, height=8))
	output_path = tmp_path / "out.png"
	cli.main(["-c", str(caption_file), "-g", "2,2", "-x", "0,0,150,120", "-o", str(output_path), str(source_png)])
	with PIL.Image.open(output_path) as result:
		assert result.size == (150, 120)
		assert result.convert("RGBA").getpixel((120, 100)) == BLACK
	output = capsys.readouterr().out
	assert "Skipping caption line 3" in output
	assert "Image written" in output


#============================================
def test_main_with_pillow_renderer(caption_file: pathlib.Path, tmp_path: pathlib.Path) -> None:
	# large enough for a readable grid label size of 12
	source_path = tmp_path / "large.png"
	PIL.Image.new("RGBA", (1200, 1200), (255, 255, 255, 255)).save(source_path, format="PNG")
	output_path = tmp_path / "out.png"
	cli.main(["-c", str(caption_file), "-g", "4,4", "-o", str(output_path), str(source_path)])
	with PIL.Image.open(output_path) as result:
		assert result.size == (1200, 1200)
		pixels = result.convert("RGBA")
		assert pixels.getpixel((600, 300)) == BLACK
		# caption ink lands near its anchor
		assert pixels.crop((50, 50, 70, 70)).getextrema()[0][0] < 255


#============================================
def test_missing_source_image_exits_nonzero(tmp_path: pathlib.Path, capsys: pytest.CaptureFixture) -> None:
	output_path = tmp_path / "out.png"
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-o", str(output_path), str(tmp_path / "missing.png")])
	assert excinfo.value.code == 1
	assert "diagram: source image" in capsys.readouterr().err
	assert not output_path.exists()


#============================================
def test_bad_coordinates_exit_nonzero(source_png: pathlib.Path, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture) -> None:
	caption_path = tmp_path / "bad.cap"
	caption_path.write_text("H 12 60;60\n", encoding="utf-8")
	output_path = tmp_path / "out.png"
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-c", str(caption_path), "-o", str(output_path), str(source_png)])
	assert excinfo.value.code == 1
	assert "malformed coordinates" in capsys.readouterr().err
	assert not output_path.exists()


#============================================
def test_bad_crop_exits_nonzero(source_png: pathlib.Path, capsys: pytest.CaptureFixture) -> None:
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-x", "10,10,5,20", "-o", "unused.png", str(source_png)])
	assert excinfo.value.code == 1
	assert "crop" in capsys.readouterr().err


#============================================
def test_output_directory_exits_nonzero(source_png: pathlib.Path, tmp_path: pathlib.Path, capsys: pytest.CaptureFixture) -> None:
	output_dir = tmp_path / "outdir"
	output_dir.mkdir()
	with pytest.raises(SystemExit) as excinfo:
		cli.main(["-o", str(output_dir), str(source_png)])
	assert excinfo.value.code == 1
	assert "diagram: cannot write" in capsys.readouterr().err
	assert output_dir.is_dir()

import pathlib

import pytest

import diagram_annotator.caption_lib as caption_lib
import diagram_annotator.config as config
import diagram_annotator.errors as errors


EXPECTED_C2H4 = [
	("H<sub>1</sub>", 84, (500, 800)),
	("H<sub>2</sub>", 84, (500, 2400)),
	("H<sub>3</sub>", 84, (2700, 800)),
	("H<sub>4</sub>", 84, (2700, 2400)),
	("C<sub>1</sub>", 84, (1000, 1600)),
	("C<sub>2</sub>", 84, (2200, 1600)),
]


#============================================
def _summarize(captions: list[config.Caption]) -> list[tuple[str, int, tuple[int, int]]]:
	return [(caption.text, caption.size, caption.position) for caption in captions]


#============================================
@pytest.mark.parametrize("name", ["c2h4.cap", "tex.cap"])
def test_caption_files_parse_to_molecule(fixtures_dir: pathlib.Path, name: str) -> None:
	"""
	Markup and LaTeX-style caption files describe the same captions.
	"""
	captions = caption_lib.read_caption_file(fixtures_dir / name, verbose=False)
	assert _summarize(captions) == EXPECTED_C2H4


#============================================
def test_single_line_example() -> None:
	captions = caption_lib.parse_caption_lines(["H_1 84 500,800"])
	assert captions == [
		config.Caption(text="H<sub>1</sub>", size=84, position=(500, 800), source_text="H_1"),
	]


#============================================
def test_every_subscript_is_rewritten() -> None:
	assert caption_lib.rewrite_subscripts("H_2") == "H<sub>2</sub>"
	assert caption_lib.rewrite_subscripts("C_1C_2") == "C<sub>1</sub>C<sub>2</sub>"
	assert caption_lib.rewrite_subscripts("CH_3CH_12OH") == "CH<sub>3</sub>CH<sub>12</sub>OH"
	assert caption_lib.rewrite_subscripts("no_subscript") == "no_subscript"


#============================================
def test_non_ascii_digits_are_not_numbers() -> None:
	# Arabic-Indic digits
	assert caption_lib.rewrite_subscripts("H_٢") == "H_٢"
	assert caption_lib.parse_caption_lines(["H_٢ ٨٤ 500,800"], verbose=False) == []
	with pytest.raises(errors.MalformedCaptionCoordinates):
		caption_lib.parse_caption_lines(["H 84 ٥٠٠,800"], verbose=False)


#============================================
def test_wrong_field_count_is_skipped(capsys: pytest.CaptureFixture) -> None:
	lines = [
		"A 10 1,2",
		"B 10",
		"",
		"C 10 3,4 extra",
		"D 12 5,6",
	]
	captions = caption_lib.parse_caption_lines(lines)
	assert [caption.source_text for caption in captions] == ["A", "D"]
	output = capsys.readouterr().out
	assert "caption line 2" in output
	assert "caption line 4" in output
	assert "caption line 3" not in output


#============================================
def test_bad_size_is_skipped_and_parsing_continues(capsys: pytest.CaptureFixture) -> None:
	lines = ["A big 1,2", "B 0 1,2", "C 1_0 1,2", "D 7 3,4"]
	captions = caption_lib.parse_caption_lines(lines)
	assert _summarize(captions) == [("D", 7, (3, 4))]
	output = capsys.readouterr().out
	assert "'big' is not an integer" in output


#============================================
def test_quiet_parse_prints_nothing(capsys: pytest.CaptureFixture) -> None:
	caption_lib.parse_caption_lines(["A", "B x 1,1"], verbose=False)
	assert capsys.readouterr().out == ""


#============================================
@pytest.mark.parametrize("position", ["500", "500,800,3", "a,800", "500,", "5.5,8"])
def test_bad_coordinates_abort_parse(position: str) -> None:
	lines = ["A 10 1,2", f"B 10 {position}", "C 10 3,4"]
	with pytest.raises(errors.MalformedCaptionCoordinates) as excinfo:
		caption_lib.parse_caption_lines(lines)
	assert excinfo.value.line_number == 2


#============================================
def test_negative_coordinates_are_allowed() -> None:
	captions = caption_lib.parse_caption_lines(["A 10 -5,+7"])
	assert captions[0].position == (-5, 7)


#============================================
def test_format_then_parse_keeps_order_and_numbers(fixtures_dir: pathlib.Path) -> None:
	captions = caption_lib.read_caption_file(fixtures_dir / "tex.cap", verbose=False)
	lines = [caption_lib.format_caption_line(caption) for caption in captions]
	assert lines[0] == "H_1 84 500,800"
	assert caption_lib.parse_caption_lines(lines) == captions


#============================================
def test_write_caption_file(tmp_path: pathlib.Path) -> None:
	captions = caption_lib.parse_caption_lines(["H_2 30 10,20", "O 40 30,40"])
	path = tmp_path / "out.cap"
	caption_lib.write_caption_file(path, captions)
	assert path.read_text(encoding="utf-8") == "H_2 30 10,20\nO 40 30,40\n"


#============================================
def test_missing_caption_file(tmp_path: pathlib.Path) -> None:
	with pytest.raises(errors.CaptionFileError):
		caption_lib.read_caption_file(tmp_path / "missing.cap")


#============================================
def test_query_caption() -> None:
	caption = caption_lib.parse_query_caption("H_2, 30 ,10,20")
	assert _summarize([caption]) == [("H<sub>2</sub>", 30, (10, 20))]
	with pytest.raises(errors.MalformedCaptionLine):
		caption_lib.parse_query_caption("H_2,30,10")
	with pytest.raises(errors.MalformedCaptionCoordinates):
		caption_lib.parse_query_caption("H_2,30,x,20")


#============================================
def test_parse_grid_spec() -> None:
	assert caption_lib.parse_grid_spec("16,16") == config.GridSpec(16, 16)
	assert caption_lib.parse_grid_spec("4,") == config.GridSpec(4, 0)
	assert caption_lib.parse_grid_spec(",") == config.GridSpec(0, 0)
	for value in ["16", "1,2,3", "a,2", "-1,2"]:
		with pytest.raises(errors.InvalidGridSpec):
			caption_lib.parse_grid_spec(value)


#============================================
def test_parse_crop_spec() -> None:
	rect = caption_lib.parse_crop_spec("0,0,100,50")
	assert rect == config.CropRect(0, 0, 100, 50)
	assert (rect.width, rect.height) == (100, 50)
	for value in ["10,10,5,20", "0,10,10,10", "1,2,3", "a,b,c,d", "0,0,10,10,10"]:
		with pytest.raises(errors.InvalidCropRect):
			caption_lib.parse_crop_spec(value)

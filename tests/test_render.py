import numpy as np
import pandas as pd
import pytest

from degenerate.core import load_image
from degenerate.render import build_argparser, main

CIRCLE = """0001111000
0111111110
0111111110
1111111111
1111111111
1111111111
1111111111
0111111110
0111111110
0001111000
"""


class TestRun:
    def test_prints_final_bitmap(self, capsys) -> None:
        assert main(["resize:10:10", "circle"]) == 0
        assert capsys.readouterr().out == CIRCLE

    def test_explicit_run_subcommand(self, capsys) -> None:
        assert main(["run", "resize:2:2", "top"]) == 0
        assert capsys.readouterr().out == "11\n00\n"

    def test_default_canvas(self, capsys) -> None:
        assert main([]) == 0
        assert capsys.readouterr().out == ("0" * 80 + "\n") * 20

    def test_options_between_commands(self, capsys) -> None:
        assert main(["resize:2:1", "--seed", "3", "all"]) == 0
        assert capsys.readouterr().out == "11\n"

    def test_options_after_explicit_run(self, capsys) -> None:
        assert main(["run", "resize:1:2", "top", "--no-print", "print"]) == 0
        assert capsys.readouterr().out == "1\n0\n"

    def test_no_print(self, capsys) -> None:
        assert main(["--no-print", "resize:1:1", "print"]) == 0
        assert capsys.readouterr().out == "0\n"

    def test_size_flags(self, capsys) -> None:
        assert main(["--width", "3", "--height", "1", "all"]) == 0
        assert capsys.readouterr().out == "111\n"

    def test_set_overrides(self, capsys) -> None:
        assert main(["--set", "canvas.width=2", "--set", "canvas.height=1"]) == 0
        assert capsys.readouterr().out == "00\n"

    def test_flags_beat_config_file(self, tmp_path, capsys) -> None:
        path = tmp_path / "user.yaml"
        path.write_text("canvas:\n  width: 4\n  height: 2\n", encoding="utf-8")
        assert main(["--config", str(path), "--set", "canvas.height=3", "--width", "1"]) == 0
        assert capsys.readouterr().out == "0\n0\n0\n"

    def test_script_runs_before_commands(self, tmp_path, capsys) -> None:
        path = tmp_path / "art.txt"
        path.write_text("# setup\nresize:2:1\n", encoding="utf-8")
        assert main(["run", "--script", str(path), "all"]) == 0
        assert capsys.readouterr().out == "11\n"

    def test_seed_is_reproducible(self, tmp_path) -> None:
        paths = [tmp_path / "a.png", tmp_path / "b.png"]
        for path in paths:
            assert main(["--seed", "3", "--no-print", "resize:4:4", "random", "all", f"save:{path}"]) == 0
        np.testing.assert_array_equal(load_image(str(paths[0])), load_image(str(paths[1])))

    def test_verbose_logs_to_stderr(self, capsys) -> None:
        assert main(["--verbose", "--no-print", "resize:1:1", "all"]) == 0
        assert "render 1x1" in capsys.readouterr().err


class TestExitCodes:
    @pytest.mark.parametrize("argv", [
        ["nope"],
        ["resize:0:0"],
        ["for:2", "all"],
        ["loop"],
        ["--set", "canvas.width=0"],
        ["--set", "logging.level=LOUD"],
    ])
    def test_usage_errors(self, argv, capsys) -> None:
        assert main(argv) == 2
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.startswith("error:")

    def test_missing_image(self, tmp_path, capsys) -> None:
        assert main([f"load:{tmp_path / 'missing.png'}"]) == 1
        assert "File error" in capsys.readouterr().err

    def test_missing_script(self, tmp_path) -> None:
        assert main(["run", "--script", str(tmp_path / "missing.txt")]) == 1

    def test_argparse_errors_exit(self) -> None:
        with pytest.raises(SystemExit) as e:
            main(["--width", "wide"])
        assert e.value.code == 2


class TestScene:
    def test_still(self, tmp_path, capsys) -> None:
        path = tmp_path / "target.png"
        assert main(["scene", "target", "--width", "8", "--height", "8", "--output", str(path)]) == 0
        assert "✅" in capsys.readouterr().out
        assert load_image(str(path)).shape == (8, 8, 3)

    def test_gif_output_animates(self, tmp_path) -> None:
        path = tmp_path / "fade.gif"
        argv = ["scene", "fade-in", "--width", "4", "--height", "4", "--set", "animation.frames=2",
                "--output", str(path)]
        assert main(argv) == 0
        assert path.exists()

    def test_frames_flag(self, tmp_path) -> None:
        path = tmp_path / "x.gif"
        assert main(["scene", "x", "--width", "4", "--height", "4", "--frames", "2", "--output", str(path)]) == 0
        assert path.exists()

    def test_unknown_scene(self) -> None:
        with pytest.raises(SystemExit):
            main(["scene", "galaxy"])

    def test_scene_names_parse(self) -> None:
        args = build_argparser().parse_args(["scene", "fade-in", "--time", "250"])
        assert args.name == "fade-in"
        assert args.time == 250.0
        assert args.frames is None


class TestBatch:
    def write_jobs(self, tmp_path, column="program_string") -> None:
        pd.DataFrame({column: ["resize:2:2 all", "nope", "resize:1:1 for:2 all loop"]}).to_csv(
            tmp_path / "jobs.csv", index=False)

    def test_renders_each_row(self, tmp_path, capsys) -> None:
        self.write_jobs(tmp_path)
        assert main(["batch", "jobs", "--set", f"batch.output_dir={tmp_path}"]) == 0
        images = tmp_path / "jobs" / "images"
        assert load_image(str(images / "0.png")).shape == (2, 2, 3)
        assert not (images / "1.png").exists()
        assert (images / "2.png").exists()
        df = pd.read_csv(tmp_path / "jobs" / "rendered.csv")
        assert df["render_filepath"].isna().tolist() == [False, True, False]
        assert "rendered.csv" in capsys.readouterr().out

    def test_column_flag(self, tmp_path) -> None:
        self.write_jobs(tmp_path, column="script")
        assert main(["batch", "jobs", "--col", "script", "--set", f"batch.output_dir={tmp_path}"]) == 0

    def test_missing_column(self, tmp_path) -> None:
        self.write_jobs(tmp_path, column="script")
        assert main(["batch", "jobs", "--set", f"batch.output_dir={tmp_path}"]) == 2

    def test_missing_csv(self, tmp_path) -> None:
        assert main(["batch", "jobs", "--set", f"batch.output_dir={tmp_path}"]) == 1

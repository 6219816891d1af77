import numpy as np
import pytest

from degenerate.commands import State, run_script
from degenerate.core import bitmap
from degenerate.languages.base import natural, positive
from degenerate.languages.filters import FILTERS, All, Circle, Cross, Mod, Rows, Square, Top, X
from degenerate.languages.operations import OPERATIONS, Invert, Random, RotateColor, parse_axis


def rendered(*commands: str, seed: int = 0) -> str:
    return bitmap(run_script(commands, State.new(seed=seed)).matrix)


def rows_of(text: str) -> str:
    return "\n".join(line.strip() for line in text.strip().splitlines())


class TestFilterBitmaps:
    def test_circle(self) -> None:
        assert rendered("resize:10:10", "circle") == rows_of("""
            0001111000
            0111111110
            0111111110
            1111111111
            1111111111
            1111111111
            1111111111
            0111111110
            0111111110
            0001111000
        """)

    def test_all(self) -> None:
        assert rendered("resize:3:2", "all") == "111\n111"

    def test_square(self) -> None:
        assert rendered("resize:4:4", "square") == "0000\n0110\n0110\n0000"

    def test_top(self) -> None:
        assert rendered("resize:2:2", "top") == "11\n00"

    def test_top_odd_rows(self) -> None:
        assert rendered("resize:1:3", "top") == "1\n1\n0"

    def test_cross(self) -> None:
        assert rendered("resize:3:3", "cross") == "010\n111\n010"

    def test_x(self) -> None:
        assert rendered("resize:3:3", "x") == "101\n010\n101"

    def test_alternate_rows(self) -> None:
        assert rendered("resize:4:4", "rows:4:2") == "1111\n0000\n1111\n0000"

    def test_rows_wider_bands(self) -> None:
        assert rendered("resize:2:4", "rows:2:2") == "11\n11\n00\n00"

    def test_mod_is_column_major(self) -> None:
        assert rendered("resize:4:2", "mod:2:0") == "1111\n0000"
        assert rendered("resize:3:1", "mod:2:1") == "010"

    def test_mod_remainder_out_of_range_matches_nothing(self) -> None:
        assert rendered("resize:2:2", "mod:2:5") == "00\n00"

    def test_coordinate_filters_follow_rotation(self) -> None:
        assert rendered("resize:5:5", "square") == rows_of("""
            00000
            01110
            01110
            01110
            00000
        """)
        assert rendered("resize:5:5", "rotate:0.125", "square") == rows_of("""
            00000
            00100
            01110
            00100
            00000
        """)

    def test_index_filters_ignore_rotation(self) -> None:
        assert rendered("resize:2:2", "rotate:0.5", "top") == "11\n00"


class TestMatches:
    def test_circle(self) -> None:
        assert Circle().matches((0, 0), (0.0, 0.0), (10, 10))
        assert Circle().matches((0, 0), (0.6, 0.7), (10, 10))
        assert not Circle().matches((0, 0), (0.9, 0.9), (10, 10))

    def test_top(self) -> None:
        assert Top().matches((1, 0), (0.0, 0.0), (2, 2))
        assert not Top().matches((1, 1), (0.0, 0.0), (2, 2))

    def test_mod(self) -> None:
        assert Mod(3, 1).matches((0, 1), (0.0, 0.0), (4, 4))
        assert Mod(3, 1).matches((1, 0), (0.0, 0.0), (4, 4))
        assert not Mod(3, 1).matches((0, 0), (0.0, 0.0), (4, 4))

    def test_cross_and_x(self) -> None:
        assert Cross().matches((0, 0), (5.0, 0.0), (10, 10))
        assert not Cross().matches((0, 0), (0.5, 0.5), (10, 10))
        assert X().matches((0, 0), (0.5, 0.5), (10, 10))
        assert not X().matches((0, 0), (5.0, 0.0), (10, 10))

    def test_square(self) -> None:
        assert Square().matches((0, 0), (0.49, -0.49), (4, 4))
        assert not Square().matches((0, 0), (0.5, 0.0), (4, 4))

    def test_all(self) -> None:
        assert All().matches((0, 0), (100.0, -100.0), (1, 1))


class TestVocabulary:
    def test_build(self) -> None:
        assert FILTERS.build("mod", ["2", "0"]) == Mod(2, 0)
        assert FILTERS.build("rows", ["4", "2"]) == Rows(4, 2)
        assert OPERATIONS.build("rotate-color", ["g", "0.5"]) == RotateColor(1, 0.5)

    def test_membership(self) -> None:
        for keyword in ("all", "circle", "cross", "square", "top", "x", "rows", "mod"):
            assert keyword in FILTERS
        for keyword in ("invert", "random", "rotate-color"):
            assert keyword in OPERATIONS
        assert "invert" not in FILTERS

    def test_unknown_keyword(self) -> None:
        with pytest.raises(KeyError):
            FILTERS.build("triangle", [])

    @pytest.mark.parametrize("keyword,tokens", [
        ("circle", ["1"]),
        ("rows", ["4"]),
        ("rows", ["0", "1"]),
        ("rows", ["4", "-2"]),
        ("mod", ["0", "0"]),
        ("mod", ["2", "-1"]),
        ("mod", ["two", "0"]),
    ])
    def test_bad_filter_arguments(self, keyword, tokens) -> None:
        with pytest.raises(ValueError):
            FILTERS.build(keyword, tokens)

    def test_direct_construction_is_validated(self) -> None:
        with pytest.raises(ValueError):
            Rows(0, 1)
        with pytest.raises(ValueError):
            Mod(0, 0)
        with pytest.raises(ValueError):
            RotateColor(3, 0.5)

    def test_converters(self) -> None:
        assert natural("0") == 0
        assert positive("3") == 3
        with pytest.raises(ValueError):
            natural("-1")
        with pytest.raises(ValueError):
            positive("0")
        with pytest.raises(ValueError):
            positive("1.5")


class TestInvert:
    def test_complement(self) -> None:
        colors = np.array([[0.0, 0.25, 1.0]])
        np.testing.assert_allclose(Invert().apply(None, colors), [[1.0, 0.75, 0.0]])

    def test_twice_is_identity(self) -> None:
        assert rendered("resize:2:2", "all", "all") == "00\n00"


class TestRandom:
    def test_range_and_shape(self) -> None:
        colors = Random().apply(np.random.default_rng(1), np.zeros((50, 3)))
        assert colors.shape == (50, 3)
        assert colors.min() >= 0.0
        assert colors.max() < 1.0

    def test_seeded_runs_are_identical(self) -> None:
        a = run_script(["resize:4:3", "random", "all"], State.new(seed=11)).matrix
        b = run_script(["resize:4:3", "random", "all"], State.new(seed=11)).matrix
        np.testing.assert_array_equal(a, b)

    def test_different_seeds_differ(self) -> None:
        a = run_script(["resize:4:3", "random", "all"], State.new(seed=1)).matrix
        b = run_script(["resize:4:3", "random", "all"], State.new(seed=2)).matrix
        assert not np.array_equal(a, b)

    def test_entropy_consumed_in_column_major_order(self) -> None:
        matrix = run_script(["resize:4:3", "random", "all"], State.new(seed=5)).matrix
        expected = np.random.default_rng(5).random((12, 3))
        np.testing.assert_array_equal(matrix.transpose(1, 0, 2).reshape(-1, 3), expected)

    def test_only_matched_pixels_consume(self) -> None:
        matrix = run_script(["resize:2:2", "random", "top"], State.new(seed=5)).matrix
        expected = np.random.default_rng(5).random((2, 3))
        np.testing.assert_array_equal(matrix[0], expected)
        assert not matrix[1].any()


class TestRotateColor:
    def test_red_becomes_green(self) -> None:
        out = RotateColor(2, 0.25).apply(None, np.array([[1.0, 0.0, 0.0]]))
        np.testing.assert_allclose(out, [[0.0, 1.0, 0.0]], atol=1e-12)

    def test_blue_becomes_red_about_green(self) -> None:
        out = RotateColor(1, 0.25).apply(None, np.array([[0.0, 0.0, 1.0]]))
        np.testing.assert_allclose(out, [[1.0, 0.0, 0.0]], atol=1e-12)

    def test_axis_passes_through_black(self) -> None:
        np.testing.assert_array_equal(RotateColor(0, 0.3).apply(None, np.zeros((2, 3))), np.zeros((2, 3)))
        # Mid grey is not a fixed point: it lies off every axis through black.
        out = RotateColor(2, 0.25).apply(None, np.array([[0.5, 0.5, 0.5]]))
        np.testing.assert_allclose(out, [[0.0, 0.5, 0.5]], atol=1e-12)

    def test_full_turn_is_identity(self) -> None:
        colors = np.random.default_rng(2).random((10, 3))
        for axis in range(3):
            np.testing.assert_allclose(RotateColor(axis, 1.0).apply(None, colors), colors, atol=1e-12)

    def test_axis_channel_is_fixed(self) -> None:
        colors = np.random.default_rng(3).random((10, 3))
        for axis in range(3):
            out = RotateColor(axis, 0.1).apply(None, colors)
            np.testing.assert_allclose(out[:, axis], colors[:, axis])

    def test_results_are_clipped(self) -> None:
        out = RotateColor(2, 0.125).apply(None, np.ones((1, 3)))
        assert out.min() >= 0.0
        assert out.max() == 1.0

    def test_matrix_is_orthonormal(self) -> None:
        for axis in range(3):
            m = RotateColor(axis, 0.3).matrix
            np.testing.assert_allclose(m @ m.T, np.eye(3), atol=1e-12)
            assert np.linalg.det(m) == pytest.approx(1.0)

    def test_command(self) -> None:
        state = run_script(["resize:1:1", "all", "rotate-color:red:0.5", "all"], State.new())
        # White keeps its red channel; green and blue turn negative and clip to zero.
        np.testing.assert_allclose(state.matrix[0, 0], [1.0, 0.0, 0.0], atol=1e-12)


class TestParseAxis:
    @pytest.mark.parametrize("token,axis", [
        ("x", 0), ("r", 0), ("Red", 0), ("0", 0),
        ("y", 1), ("g", 1), ("green", 1), ("1.0", 1),
        ("z", 2), ("b", 2), ("BLUE", 2), ("2", 2),
    ])
    def test_accepted(self, token, axis) -> None:
        assert parse_axis(token) == axis

    @pytest.mark.parametrize("token", ["3", "-1", "0.5", "w", ""])
    def test_rejected(self, token) -> None:
        with pytest.raises(ValueError):
            parse_axis(token)

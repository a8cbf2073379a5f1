"""
Tests for the filter graph builder.
"""

import pytest

from quran_reels.services.filter_graph import (
    Filter,
    FilterGraph,
    FilterGraphError,
    Stream,
    escape_value,
    format_number,
)


class TestFormatting:
    """Tests for value rendering."""

    def test_format_number(self):
        assert format_number(3.0) == "3"
        assert format_number(7.5) == "7.5"
        assert format_number(1.0 / 3) == "0.333333"
        assert format_number(0.0) == "0"

    def test_escape_quotes_graph_separators(self):
        assert escape_value("gte(t,3)*lt(t,7.5)") == "'gte(t,3)*lt(t,7.5)'"

    def test_escape_colon(self):
        assert escape_value("a:b") == "a\\:b"

    def test_plain_values_untouched(self):
        assert escape_value(1080) == "1080"
        assert escape_value("1.35+0.2*sin(on/35)") == "1.35+0.2*sin(on/35)"

    def test_filter_render(self):
        rendered = Filter.of("fade", t="in", st=0.0, d=0.5, alpha=1).render()
        assert rendered == "fade=t=in:st=0:d=0.5:alpha=1"

    def test_filter_without_arguments(self):
        assert Filter.of("hflip").render() == "hflip"


class TestFilterGraph:
    """Tests for graph wiring checks."""

    def test_inputs_indexed_in_order(self):
        graph = FilterGraph()
        first = graph.add_input("a.mp4")
        second = graph.add_input("b.png", "-loop", "1")

        assert first.index == 0
        assert second.index == 1
        assert graph.input_args() == ["-i", "a.mp4", "-loop", "1", "-i", "b.png"]

    def test_render_chains(self):
        graph = FilterGraph()
        src = graph.add_input("a.mp4")
        base = graph.chain(src.video, Filter.of("scale", 1080, 1920), label="base")
        graph.chain(base, Filter.of("format", "yuv420p"), label="out")

        assert graph.render() == "[0:v]scale=1080:1920[base];[base]format=yuv420p[out]"
        assert graph.unconsumed_labels() == ["out"]

    def test_out_of_range_input_rejected(self):
        graph = FilterGraph()
        graph.add_input("a.mp4")
        with pytest.raises(FilterGraphError, match="missing input"):
            graph.chain(Stream("3:v"), Filter.of("null"), label="z")

    def test_undefined_label_rejected(self):
        graph = FilterGraph()
        graph.add_input("a.mp4")
        with pytest.raises(FilterGraphError, match="before it is defined"):
            graph.chain(Stream("ghost"), Filter.of("null"), label="z")

    def test_label_consumed_twice_rejected(self):
        graph = FilterGraph()
        src = graph.add_input("a.mp4")
        base = graph.chain(src.video, Filter.of("null"), label="base")
        graph.chain(base, Filter.of("null"), label="one")
        with pytest.raises(FilterGraphError, match="consumed twice"):
            graph.chain(base, Filter.of("null"), label="two")

    def test_duplicate_label_rejected(self):
        graph = FilterGraph()
        src = graph.add_input("a.mp4")
        graph.chain(src.video, Filter.of("null"), label="base")
        with pytest.raises(FilterGraphError, match="defined twice"):
            graph.chain(src.video, Filter.of("null"), label="base")

"""
Filter Graph - small typed builder for ffmpeg -filter_complex descriptions.

Inputs are registered in order and hand out their stream references, chains
connect references through filters to new labels, and render() produces the
filtergraph text. Input indices, label uniqueness and single use of every
intermediate label are checked while the graph is built.
"""

from dataclasses import dataclass, field
from typing import Any, Sequence, Union

# Characters that end a filter argument at the filtergraph level
_GRAPH_SPECIAL = set(",;[]' \t")


class FilterGraphError(ValueError):
    """Raised when a graph is wired inconsistently."""
    pass


def format_number(value: float) -> str:
    """Compact, deterministic decimal text with microsecond precision."""
    text = f"{value:.6f}".rstrip("0").rstrip(".")
    if text in ("", "-0"):
        return "0"
    return text


def escape_value(value: Any) -> str:
    """Render an option value, quoting it when it holds graph-level separators."""
    if isinstance(value, bool):
        text = "1" if value else "0"
    elif isinstance(value, float):
        text = format_number(value)
    else:
        text = str(value)

    text = text.replace(":", "\\:")
    if any(c in _GRAPH_SPECIAL for c in text):
        text = "'" + text.replace("'", "'\\''") + "'"
    return text


@dataclass(frozen=True)
class Stream:
    """A stream reference: an input stream ("0:v") or a chain label ("base")."""

    spec: str

    @property
    def is_input(self) -> bool:
        return ":" in self.spec

    def __str__(self) -> str:
        return f"[{self.spec}]"


@dataclass(frozen=True)
class Filter:
    """One filter with positional arguments and keyword options."""

    name: str
    args: tuple = ()
    options: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def of(cls, name: str, *args: Any, **options: Any) -> "Filter":
        return cls(name=name, args=tuple(args), options=tuple(options.items()))

    def render(self) -> str:
        parts = [escape_value(a) for a in self.args]
        parts.extend(f"{key}={escape_value(value)}" for key, value in self.options)
        if not parts:
            return self.name
        return f"{self.name}={':'.join(parts)}"


@dataclass(frozen=True)
class FilterChain:
    """inputs -> filter, filter, ... -> outputs"""

    inputs: tuple[Stream, ...]
    filters: tuple[Filter, ...]
    outputs: tuple[Stream, ...]

    def render(self) -> str:
        return (
            "".join(str(s) for s in self.inputs)
            + ",".join(f.render() for f in self.filters)
            + "".join(str(s) for s in self.outputs)
        )


@dataclass(frozen=True)
class GraphInput:
    """An ffmpeg input file with its per-input options."""

    index: int
    path: str
    options: tuple[str, ...] = ()

    @property
    def video(self) -> Stream:
        return Stream(f"{self.index}:v")

    @property
    def audio(self) -> Stream:
        return Stream(f"{self.index}:a")


@dataclass
class FilterGraph:
    """Builder for a complete -filter_complex graph and its input list."""

    inputs: list[GraphInput] = field(default_factory=list)
    chains: list[FilterChain] = field(default_factory=list)
    _defined: set[str] = field(default_factory=set)
    _consumed: set[str] = field(default_factory=set)

    def add_input(self, path: str, *options: str) -> GraphInput:
        """Register an input; its index is its registration order."""
        graph_input = GraphInput(index=len(self.inputs), path=path, options=tuple(options))
        self.inputs.append(graph_input)
        return graph_input

    def chain(
        self,
        inputs: Union[Stream, Sequence[Stream]],
        *filters: Filter,
        label: str,
    ) -> Stream:
        """
        Append a filter chain and return a reference to its output.

        Raises:
            FilterGraphError: Unknown input, reused label, or no filters
        """
        if isinstance(inputs, Stream):
            inputs = (inputs,)
        if not filters:
            raise FilterGraphError(f"Chain [{label}] has no filters")
        if ":" in label:
            raise FilterGraphError(f"Invalid label: {label}")
        if label in self._defined:
            raise FilterGraphError(f"Label [{label}] defined twice")

        for stream in inputs:
            self._check_input(stream)

        for stream in inputs:
            if not stream.is_input:
                self._consumed.add(stream.spec)

        output = Stream(label)
        self._defined.add(label)
        self.chains.append(FilterChain(tuple(inputs), tuple(filters), (output,)))
        return output

    def _check_input(self, stream: Stream) -> None:
        if stream.is_input:
            index_text = stream.spec.split(":", 1)[0]
            if not index_text.isdigit() or int(index_text) >= len(self.inputs):
                raise FilterGraphError(f"Stream {stream} refers to a missing input")
            return
        if stream.spec not in self._defined:
            raise FilterGraphError(f"Stream {stream} is used before it is defined")
        if stream.spec in self._consumed:
            raise FilterGraphError(f"Stream {stream} is consumed twice")

    def unconsumed_labels(self) -> list[str]:
        """Chain outputs nothing reads; these must be mapped to the output."""
        return [c.outputs[0].spec for c in self.chains if c.outputs[0].spec not in self._consumed]

    def input_args(self) -> list[str]:
        args: list[str] = []
        for graph_input in self.inputs:
            args.extend(graph_input.options)
            args.extend(["-i", graph_input.path])
        return args

    def render(self) -> str:
        return ";".join(chain.render() for chain in self.chains)

"""Data models for artists, the similarity graph and the Connections game."""

from dataclasses import dataclass, field
from enum import Enum

# Cosmic palette, one color per genre cluster by frequency rank
CLUSTER_PALETTE = (
    "#a855f7",  # purple
    "#8b5cf6",  # violet
    "#6366f1",  # indigo
    "#3b82f6",  # blue
    "#0ea5e9",  # sky
    "#06b6d4",  # cyan
    "#14b8a6",  # teal
    "#10b981",  # emerald
    "#22c55e",  # green
    "#84cc16",  # lime
    "#eab308",  # yellow
    "#f59e0b",  # amber
    "#f97316",  # orange
    "#ef4444",  # red
    "#ec4899",  # pink
    "#d946ef",  # fuchsia
    "#c084fc",  # light purple
    "#818cf8",  # light indigo
    "#60a5fa",  # light blue
    "#38bdf8",  # light sky
    "#2dd4bf",  # light teal
    "#4ade80",  # light green
    "#a3e635",  # light lime
    "#fbbf24",  # light amber
)

DEFAULT_NODE_COLOR = "#6366f1"
UNKNOWN_GENRE = "unknown"


class Phase(str, Enum):
    """Lifecycle of a Connections game session."""

    IDLE = "idle"
    SETUP = "setup"
    PLAYING = "playing"
    COMPLETE = "complete"


class GameMode(str, Enum):
    RELAXED = "relaxed"
    COMPETITIVE = "competitive"


class NodeState(str, Enum):
    """Display state of a node during a game, in derivation priority order."""

    NORMAL = "normal"
    TARGET = "target"
    CURRENT = "current"
    START = "start"
    PATH = "path"
    FAILED = "failed"
    REVEALED = "revealed"
    HIDDEN = "hidden"


class GuessOutcome(str, Enum):
    CONNECTED = "connected"
    COMPLETE = "complete"
    NOT_FOUND = "not_found"
    ALREADY_IN_PATH = "already_in_path"
    NOT_CONNECTED = "not_connected"
    HINT = "hint"
    HINT_INVALID = "hint_invalid"
    NO_HIDDEN = "no_hidden"


@dataclass(frozen=True)
class Artist:
    """
    A ranked favorite artist as supplied by the data-fetching layer.

    `rank` is the position in the source ranking (0 = most listened).
    """

    id: str
    name: str
    genres: tuple[str, ...] = ()
    rank: int = 0
    image: str | None = None
    url: str | None = None
    playcount: int = 0
    source: str = "file"


@dataclass
class Node:
    """A graph vertex built from an Artist. Color fields are set by clustering."""

    id: str
    name: str
    genres: tuple[str, ...]
    rank: int
    size: float
    image: str | None = None
    url: str | None = None
    playcount: int = 0
    source: str = "file"
    color: str | None = None
    primary_genre: str | None = None


@dataclass(frozen=True)
class Edge:
    """Undirected similarity edge between two nodes."""

    source: str
    target: str
    shared_attributes: tuple[str, ...]
    weight: float

    @property
    def key(self) -> tuple[str, str]:
        """Unordered pair key used for deduplication."""
        return (
            (self.source, self.target)
            if self.source <= self.target
            else (self.target, self.source)
        )


@dataclass(frozen=True)
class Cluster:
    """A named genre grouping over the graph (presentational only)."""

    id: str
    name: str
    member_node_ids: tuple[str, ...]
    color_index: int

    @property
    def node_count(self) -> int:
        return len(self.member_node_ids)


@dataclass
class Graph:
    """
    Connected, degree-bounded artist graph.

    Every node has at least one edge; nodes without any accepted edge are
    dropped by the builder.
    """

    nodes: list[Node] = field(default_factory=list)
    edges: list[Edge] = field(default_factory=list)
    clusters: list[Cluster] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.nodes

    @property
    def node_ids(self) -> list[str]:
        return [node.id for node in self.nodes]

    def node_map(self) -> dict[str, Node]:
        return {node.id: node for node in self.nodes}

    def degree(self, node_id: str) -> int:
        return sum(1 for edge in self.edges if node_id in (edge.source, edge.target))


@dataclass(frozen=True)
class Challenge:
    """A start/target pair with one optimal path between them."""

    start_node_id: str
    target_node_id: str
    optimal_path: tuple[str, ...]  # start ... target inclusive

    @property
    def optimal_hops(self) -> int:
        return len(self.optimal_path) - 1


@dataclass(frozen=True)
class FailedGuess:
    """A guessed node that was not adjacent to the path tail at guess time."""

    node_id: str
    from_node_id: str


@dataclass(frozen=True)
class GuessResult:
    """Outcome of a guess or hint, kept as transient feedback on the session."""

    success: bool
    outcome: GuessOutcome
    message: str
    node_id: str | None = None

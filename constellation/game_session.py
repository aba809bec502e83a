"""Connections game: a shortest-path guessing game over the artist graph."""

import logging
import random
import threading
import time
from collections.abc import Callable

from constellation.adjacency import AdjacencyIndex
from constellation.challenge_generator import generate_challenge
from constellation.config import ConnectionsConfig, ScoringConfig
from constellation.fuzzy_resolver import resolve_exact, search_artists
from constellation.models import (
    Challenge,
    FailedGuess,
    GameMode,
    Graph,
    GuessOutcome,
    GuessResult,
    Node,
    NodeState,
    Phase,
)

logger = logging.getLogger(__name__)


class StaleChallengeError(Exception):
    """A challenge references nodes that are not in the session's graph."""


def compute_score(
    hops: int,
    optimal_hops: int,
    elapsed_seconds: float,
    wrong_guesses: int,
    hint_count: int,
    scoring: ScoringConfig,
) -> int:
    """
    Competitive-mode score for a completed challenge.

    Extra hops beyond the optimal path, wrong guesses and hints cost points;
    every second left on the clock earns `time_bonus`. Never negative.
    """
    extra_hops = max(0, hops - optimal_hops)
    seconds_left = max(0.0, scoring.time_limit - elapsed_seconds)
    score = (
        scoring.base_score
        - scoring.hop_penalty * extra_hops
        + scoring.time_bonus * seconds_left
        - scoring.guess_penalty * wrong_guesses
        - scoring.hint_cost * hint_count
    )
    return max(0, round(score))


class GameSession:
    """
    One player's Connections game over a fixed Graph snapshot.

    Phases run idle -> setup -> playing -> complete. Each public action is
    dispatched to the handler registered for (current phase, action); actions
    with no handler in the current phase are ignored. Mutations are
    serialized with a lock so concurrent guesses cannot interleave.
    """

    def __init__(
        self,
        graph: Graph,
        adjacency: AdjacencyIndex | None = None,
        config: ConnectionsConfig | None = None,
        rng: random.Random | None = None,
        clock: Callable[[], float] = time.time,
    ):
        self.graph = graph
        self.adjacency = adjacency or AdjacencyIndex.from_graph(graph)
        self.config = config or ConnectionsConfig()
        self._rng = rng or random.Random()
        self._clock = clock
        self._node_map = graph.node_map()
        self._lock = threading.Lock()
        self._reset(GameMode.RELAXED)

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    def _reset(self, mode: GameMode) -> None:
        self.phase = Phase.IDLE
        self.mode = mode
        self.challenge: Challenge | None = None
        self.path: list[str] = []
        self.revealed_node_ids: set[str] = set()
        self.failed_guesses: list[FailedGuess] = []
        self.guess_count = 0
        self.wrong_guess_count = 0
        self.hint_count = 0
        self.hint_selection_active = False
        self.start_time: float | None = None
        self.end_time: float | None = None
        self.last_result: GuessResult | None = None
        self._path_ids: set[str] = set()
        self._failed_ids: set[str] = set()

    @property
    def current_node_id(self) -> str | None:
        return self.path[-1] if self.path else None

    @property
    def hops(self) -> int:
        return max(0, len(self.path) - 1)

    @property
    def can_backtrack(self) -> bool:
        return (
            self.phase == Phase.PLAYING
            and self.config.gameplay.allow_backtrack
            and len(self.path) > 1
        )

    @property
    def elapsed_seconds(self) -> float:
        if self.start_time is None:
            return 0.0
        end = self.end_time if self.end_time is not None else self._clock()
        return end - self.start_time

    def node(self, node_id: str) -> Node | None:
        return self._node_map.get(node_id)

    def node_state(self, node_id: str) -> NodeState:
        """
        Display state of a node.

        Priority: target > current > start > path > failed > revealed > hidden.
        Outside playing/complete every node is normal.
        """
        if self.phase not in (Phase.PLAYING, Phase.COMPLETE) or self.challenge is None:
            return NodeState.NORMAL
        if node_id == self.challenge.target_node_id:
            return NodeState.TARGET
        if node_id == self.current_node_id:
            return NodeState.CURRENT
        if node_id == self.challenge.start_node_id:
            return NodeState.START
        if node_id in self._path_ids:
            return NodeState.PATH
        if node_id in self._failed_ids:
            return NodeState.FAILED
        if node_id in self.revealed_node_ids:
            return NodeState.REVEALED
        return NodeState.HIDDEN

    def hidden_node_ids(self) -> list[str]:
        return [
            node.id
            for node in self.graph.nodes
            if self.node_state(node.id) == NodeState.HIDDEN
        ]

    def search(self, query: str) -> list[Node]:
        """Autocomplete suggestions for a partial artist name."""
        return search_artists(
            query,
            self.graph.nodes,
            limit=self.config.input.autocomplete_limit,
            min_query_length=self.config.input.min_query_length,
        )

    def score(self) -> int | None:
        """Score of a completed competitive game, otherwise None."""
        if self.mode != GameMode.COMPETITIVE or self.phase != Phase.COMPLETE:
            return None
        return compute_score(
            hops=self.hops,
            optimal_hops=self.challenge.optimal_hops,
            elapsed_seconds=self.elapsed_seconds,
            wrong_guesses=self.wrong_guess_count,
            hint_count=self.hint_count,
            scoring=self.config.scoring,
        )

    # ------------------------------------------------------------------
    # Public actions
    # ------------------------------------------------------------------

    def _dispatch(self, action: str, default, *args):
        with self._lock:
            handler = _HANDLERS.get((self.phase, action))
            if handler is None:
                logger.debug("Ignoring %s during %s phase", action, self.phase.value)
                return default
            return handler(self, *args)

    def start_game(
        self, mode: GameMode | str = GameMode.RELAXED, challenge: Challenge | None = None
    ) -> bool:
        """
        Generate (or load) a challenge and enter the setup phase.

        Returns:
            False if the graph is too small or no challenge fits the hop band
        """
        return self._dispatch("start_game", False, GameMode(mode), challenge)

    def new_challenge(self) -> bool:
        """Regenerate a challenge keeping the current mode."""
        return self._dispatch("new_challenge", False)

    def begin_playing(self) -> bool:
        return self._dispatch("begin_playing", False)

    def submit_guess(self, name_or_id: str | None) -> GuessResult | None:
        """
        Try to extend the path with the guessed artist.

        Returns:
            GuessResult, or None when not playing or the guess is blank
        """
        return self._dispatch("submit_guess", None, name_or_id)

    def go_back_to(self, node_id: str) -> bool:
        """Truncate the path so that node_id becomes the current node."""
        return self._dispatch("go_back_to", False, node_id)

    def begin_hint_selection(self) -> bool:
        return self._dispatch("begin_hint_selection", False)

    def reveal_hint_node(self, node_id: str) -> GuessResult | None:
        return self._dispatch("reveal_hint_node", None, node_id)

    def cancel_hint_selection(self) -> None:
        with self._lock:
            self.hint_selection_active = False

    def clear_feedback(self) -> None:
        with self._lock:
            self.last_result = None

    def exit_game(self) -> None:
        with self._lock:
            self._reset(GameMode.RELAXED)

    # ------------------------------------------------------------------
    # Handlers, one per (phase, action)
    # ------------------------------------------------------------------

    def _validate_challenge(self, challenge: Challenge) -> None:
        missing = [
            node_id
            for node_id in challenge.optimal_path
            if node_id not in self._node_map
        ]
        if missing:
            raise StaleChallengeError(
                f"Challenge references nodes missing from the graph: {missing}"
            )

    def _start_failed(self, mode: GameMode) -> bool:
        # A game in progress or finished is left untouched
        if self.phase in (Phase.IDLE, Phase.SETUP):
            self._reset(mode)
        return False

    def _on_start_game(self, mode: GameMode, challenge: Challenge | None) -> bool:
        if len(self.graph.nodes) < 2:
            logger.error("Not enough nodes to start game")
            return self._start_failed(mode)

        if challenge is None:
            challenge = generate_challenge(
                self.graph.nodes,
                self.adjacency,
                self.config.challenge,
                rng=self._rng,
            )
        if challenge is None:
            logger.warning("Could not generate challenge")
            return self._start_failed(mode)

        self._validate_challenge(challenge)
        self._reset(mode)
        self.phase = Phase.SETUP
        self.challenge = challenge

        logger.info(
            "Challenge ready: %s -> %s (%d hops, %s mode)",
            self._node_map[challenge.start_node_id].name,
            self._node_map[challenge.target_node_id].name,
            challenge.optimal_hops,
            mode.value,
        )
        return True

    def _on_new_challenge(self) -> bool:
        return self._on_start_game(self.mode, None)

    def _on_begin_playing(self) -> bool:
        start = self.challenge.start_node_id
        target = self.challenge.target_node_id
        self.phase = Phase.PLAYING
        self.path = [start]
        self._path_ids = {start}
        self.revealed_node_ids = {start, target}
        self.start_time = self._clock()
        return True

    def _resolve(self, guess: str) -> Node | None:
        return self._node_map.get(guess) or resolve_exact(guess, self.graph.nodes)

    def _on_submit_guess(self, name_or_id: str | None) -> GuessResult | None:
        if name_or_id is None:
            return None
        guess = name_or_id.strip()
        if not guess:
            return None

        node = self._resolve(guess)

        if node is None:
            result = GuessResult(
                success=False,
                outcome=GuessOutcome.NOT_FOUND,
                message="Artist not in your listening history",
            )
            self.guess_count += 1
            self.wrong_guess_count += 1
            self.last_result = result
            return result

        if node.id in self._path_ids:
            result = GuessResult(
                success=False,
                outcome=GuessOutcome.ALREADY_IN_PATH,
                message=f"{node.name} is already in your path",
                node_id=node.id,
            )
            self.last_result = result
            return result

        current_id = self.current_node_id
        self.guess_count += 1
        self.revealed_node_ids.add(node.id)

        if not self.adjacency.is_adjacent(current_id, node.id):
            result = GuessResult(
                success=False,
                outcome=GuessOutcome.NOT_CONNECTED,
                message=(
                    f"{node.name} isn't connected to {self._node_map[current_id].name}"
                ),
                node_id=node.id,
            )
            self.failed_guesses.append(
                FailedGuess(node_id=node.id, from_node_id=current_id)
            )
            self._failed_ids.add(node.id)
            self.wrong_guess_count += 1
            self.last_result = result
            return result

        self.path.append(node.id)
        self._path_ids.add(node.id)

        if node.id == self.challenge.target_node_id:
            self.phase = Phase.COMPLETE
            self.end_time = self._clock()
            result = GuessResult(
                success=True,
                outcome=GuessOutcome.COMPLETE,
                message="Connection found!",
                node_id=node.id,
            )
            logger.info(
                "Challenge complete in %d hops (optimal %d), %d guesses, %d hints",
                self.hops,
                self.challenge.optimal_hops,
                self.guess_count,
                self.hint_count,
            )
        else:
            result = GuessResult(
                success=True,
                outcome=GuessOutcome.CONNECTED,
                message=f"Connected to {node.name}!",
                node_id=node.id,
            )

        self.last_result = result
        return result

    def _on_go_back_to(self, node_id: str) -> bool:
        if not self.config.gameplay.allow_backtrack:
            return False
        if node_id not in self._path_ids or node_id == self.current_node_id:
            return False

        index = self.path.index(node_id)
        self.path = self.path[: index + 1]
        self._path_ids = set(self.path)
        self.last_result = None
        return True

    def _on_begin_hint_selection(self) -> bool:
        if not self.hidden_node_ids():
            self.last_result = GuessResult(
                success=False,
                outcome=GuessOutcome.NO_HIDDEN,
                message="All nodes are already visible",
            )
            return False

        self.hint_selection_active = True
        return True

    def _on_reveal_hint_node(self, node_id: str) -> GuessResult | None:
        if not self.hint_selection_active:
            return None

        node = self._node_map.get(node_id)
        if node is None:
            return None

        if self.node_state(node_id) != NodeState.HIDDEN:
            return GuessResult(
                success=False,
                outcome=GuessOutcome.HINT_INVALID,
                message="Select a hidden node to reveal",
                node_id=node_id,
            )

        self.revealed_node_ids.add(node_id)
        self.hint_count += 1
        self.hint_selection_active = False
        result = GuessResult(
            success=True,
            outcome=GuessOutcome.HINT,
            message=f"Revealed: {node.name}",
            node_id=node_id,
        )
        self.last_result = result
        return result


_HANDLERS = {
    (Phase.IDLE, "start_game"): GameSession._on_start_game,
    (Phase.SETUP, "start_game"): GameSession._on_start_game,
    (Phase.COMPLETE, "start_game"): GameSession._on_start_game,
    (Phase.SETUP, "new_challenge"): GameSession._on_new_challenge,
    (Phase.PLAYING, "new_challenge"): GameSession._on_new_challenge,
    (Phase.COMPLETE, "new_challenge"): GameSession._on_new_challenge,
    (Phase.SETUP, "begin_playing"): GameSession._on_begin_playing,
    (Phase.PLAYING, "submit_guess"): GameSession._on_submit_guess,
    (Phase.PLAYING, "go_back_to"): GameSession._on_go_back_to,
    (Phase.PLAYING, "begin_hint_selection"): GameSession._on_begin_hint_selection,
    (Phase.PLAYING, "reveal_hint_node"): GameSession._on_reveal_hint_node,
}

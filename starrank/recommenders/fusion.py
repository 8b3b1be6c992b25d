from collections.abc import Collection, Iterable, Mapping, Sequence
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import KW_ONLY, dataclass, field

import pandas as pd

from ..constants import IID, NUM_SOURCES, UID
from ..data.schemas import Candidate
from ..errors import ConfigurationError, GeneratorFailure
from ..utils.logger import logger
from .generators import Generator


def _generator_name(generator: Generator, index: int) -> str:
    return getattr(generator, "__name__", None) or f"generator_{index}"


def to_candidate_frame(
    name: str,
    result: pd.DataFrame | Iterable[Candidate],
    user_col: str = UID,
    item_col: str = IID,
) -> pd.DataFrame:
    """Normalize the output of a generator to a (user, item) frame.

    :raises GeneratorFailure: If the output is neither a frame with the user and
        item columns nor an iterable of candidates.
    """
    if isinstance(result, pd.DataFrame):
        missing = [c for c in (user_col, item_col) if c not in result.columns]
        if missing:
            raise GeneratorFailure(name, f"missing columns {missing}")
        return result[[user_col, item_col]]
    if result is None or isinstance(result, str | bytes):
        raise GeneratorFailure(name, f"unsupported output {type(result).__name__}")
    try:
        rows = [(c.user_id, c.item_id) for c in result]
    except (AttributeError, TypeError) as e:
        raise GeneratorFailure(name, f"malformed candidates: {e}") from e
    return pd.DataFrame.from_records(rows, columns=[user_col, item_col])


def merge_candidates(
    *frames: pd.DataFrame,
    user_col: str = UID,
    item_col: str = IID,
    keep_provenance: bool = False,
) -> pd.DataFrame:
    """Union candidate frames, keeping one row per (user, item).

    The merge is associative and commutative: merging partial unions in any order
    or grouping gives the same frame. With ``keep_provenance`` the number of
    sources proposing each pair is summed into ``num_sources``.
    """
    keys = [user_col, item_col]
    # an empty part would turn the ID columns into object dtype
    frames = tuple(frame for frame in frames if len(frame) > 0) or frames[:1]
    parts: list[pd.DataFrame] = []
    for frame in frames:
        if keep_provenance and NUM_SOURCES in frame.columns:
            parts.append(frame[keys + [NUM_SOURCES]])
        else:
            part = frame[keys].drop_duplicates()
            if keep_provenance:
                part = part.assign(**{NUM_SOURCES: 1})
            parts.append(part)
    if not parts:
        columns = keys + ([NUM_SOURCES] if keep_provenance else [])
        return pd.DataFrame(columns=columns)

    merged = pd.concat(parts, ignore_index=True)
    if keep_provenance:
        merged = merged.groupby(keys, as_index=False, sort=False)[NUM_SOURCES].sum()
    else:
        merged = merged.drop_duplicates(subset=keys)
    return merged.sort_values(by=keys, kind="stable", ignore_index=True)


@dataclass(frozen=True, slots=True)
class CandidateFusion:
    """Fuse the candidates of independent generators into one deduplicated set.

    Each generator runs on its own thread and never sees the output of another.
    A generator raising, timing out or returning malformed data is logged and
    skipped; the fusion continues with the others.
    """

    generators: Sequence[Generator] | Mapping[str, Generator]
    _: KW_ONLY
    user_col: str = UID
    item_col: str = IID
    timeout: float | None = None
    max_workers: int | None = None
    keep_provenance: bool = False

    named_generators: tuple[tuple[str, Generator], ...] = field(
        init=False, repr=False, hash=False, compare=False
    )

    def __post_init__(self) -> None:
        if isinstance(self.generators, Mapping):
            named = tuple((str(name), gen) for name, gen in self.generators.items())
        else:
            named = tuple(
                (_generator_name(gen, i), gen) for i, gen in enumerate(self.generators)
            )
        for name, gen in named:
            if not callable(gen):
                raise ConfigurationError(f"Generator {name} is not callable.")
        if self.timeout is not None and not self.timeout > 0:
            raise ConfigurationError("`timeout` has to be positive or None.")
        if self.max_workers is not None and self.max_workers < 1:
            raise ConfigurationError("`max_workers` has to be at least 1 or None.")
        object.__setattr__(self, "named_generators", named)

    def __repr__(self) -> str:
        names = [name for name, _ in self.named_generators]
        return f"CandidateFusion(generators={names}, timeout={self.timeout})"

    def __call__(self, users: Collection) -> pd.DataFrame:
        """Return the unique candidates of all generators for ``users``.

        :param users: The target user IDs.
        :return: A frame of unique (user, item) rows.
        """
        logger.info("Fusing candidates by %s ...", repr(self))
        frames, failures = self.generate(users)
        for failure in failures:
            logger.warning("Skipped candidates: %s", failure)

        fused = merge_candidates(
            *frames,
            user_col=self.user_col,
            item_col=self.item_col,
            keep_provenance=self.keep_provenance,
        )
        user_set = set(users)
        in_scope = fused[self.user_col].isin(user_set)
        if not in_scope.all():
            logger.debug(
                "  dropped %d candidates of unrequested users", int((~in_scope).sum())
            )
            fused = fused[in_scope].reset_index(drop=True)
        logger.debug("  # fused candidates: %d", len(fused))
        return fused

    def generate(
        self, users: Collection
    ) -> tuple[list[pd.DataFrame], list[GeneratorFailure]]:
        """Run every generator and collect their outputs and failures.

        :param users: The target user IDs.
        :return: The candidate frames of the successful generators and the failures
            of the others.
        """
        users = frozenset(users)
        frames: list[pd.DataFrame] = []
        failures: list[GeneratorFailure] = []
        if not self.named_generators:
            return frames, failures

        executor = ThreadPoolExecutor(
            max_workers=self.max_workers or len(self.named_generators),
            thread_name_prefix="starrank-generator",
        )
        try:
            futures: dict[Future, str] = {
                executor.submit(gen, users): name
                for name, gen in self.named_generators
            }
            done, not_done = wait(futures, timeout=self.timeout)
            for future in not_done:
                future.cancel()
                reason = f"timed out after {self.timeout}s"
                failures.append(GeneratorFailure(futures[future], reason))
            for future, name in futures.items():
                if future not in done:
                    continue
                try:
                    frame = to_candidate_frame(
                        name, future.result(), self.user_col, self.item_col
                    )
                except GeneratorFailure as failure:
                    failures.append(failure)
                    continue
                except Exception as e:
                    failures.append(GeneratorFailure(name, repr(e)))
                    continue
                logger.debug("  # candidates from %s: %d", name, len(frame))
                frames.append(frame)
        finally:
            # a hung generator must not block the fusion
            executor.shutdown(wait=False, cancel_futures=True)
        return frames, failures


def fuse(
    generators: Sequence[Generator] | Mapping[str, Generator],
    users: Collection,
    timeout: float | None = None,
) -> pd.DataFrame:
    """Fuse the candidates of ``generators`` for ``users`` using the default columns."""
    return CandidateFusion(generators, timeout=timeout)(users)

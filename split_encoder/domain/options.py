"""
An immutable, ordered set of ffmpeg command-line options.

Every stage of the pipeline derives its own command line from one base set of
options typed by the user. `OptionSet` is the value those derivations operate
on: it knows which argv items are flags, which flags carry a value and which
items are positional (output names), and every operation returns a new
instance so the base set can be reused safely.
"""
import re
import shlex
from typing import Callable, Iterable, Iterator, List, Optional, Tuple, Union

# Flags that never take a value, even when a non-flag item follows them.
BARE_FLAGS = frozenset(
    {
        "-an",
        "-vn",
        "-sn",
        "-dn",
        "-hide_banner",
        "-y",
        "-n",
        "-nostdin",
        "-nostats",
        "-stats",
        "-shortest",
        "-copyts",
        "-start_at_zero",
        "-re",
        "-accurate_seek",
        "-noaccurate_seek",
        "-ignore_unknown",
        "-benchmark",
    }
)

Token = Tuple[str, Optional[str]]
OptionValue = Union[str, Callable[[str], str]]

_FLAG = re.compile(r"-[A-Za-z_]")


def is_flag(item: str) -> bool:
    """
    A lone "-" is a positional (stdout/null output), not a flag. Neither are
    negative numbers and stream specifiers such as "-1.5" or "-0:s", which
    only ever appear as values.
    """
    return _FLAG.match(item) is not None


def tokenize(args: Iterable[str]) -> Tuple[Token, ...]:
    """
    Groups a flat argv list into `(flag, value)` tokens.

    Bare flags and positionals become `(item, None)`. A flag takes the next
    item as its value only if that item is not itself a flag, so an unknown
    value-less flag never swallows the option after it.

    Example:
        ["-i", "in.mkv", "-an", "out.webm"] ->
        (("-i", "in.mkv"), ("-an", None), ("out.webm", None))
    """
    items = list(args)
    tokens: List[Token] = []
    i = 0
    while i < len(items):
        item = items[i]
        if (
            is_flag(item)
            and item not in BARE_FLAGS
            and i + 1 < len(items)
            and not is_flag(items[i + 1])
        ):
            tokens.append((item, items[i + 1]))
            i += 2
        else:
            tokens.append((item, None))
            i += 1
    return tuple(tokens)


class OptionSet:
    """
    Ordered sequence of option tokens with lookup and rewrite operations.

    Instances are immutable: `remove`, `fix` and `extend` build new option
    sets and preserve the relative order of every token they do not target.
    """

    __slots__ = ("_tokens",)

    def __init__(self, tokens: Iterable[Token] = ()):
        self._tokens: Tuple[Token, ...] = tuple(tokens)

    @classmethod
    def from_args(cls, args: Iterable[str]) -> "OptionSet":
        return cls(tokenize(args))

    @classmethod
    def from_string(cls, raw: str) -> "OptionSet":
        """Parses a raw option string the way a POSIX shell would split it."""
        return cls.from_args(shlex.split(raw))

    @property
    def tokens(self) -> Tuple[Token, ...]:
        return self._tokens

    def to_args(self) -> List[str]:
        """Flattens the tokens back into an argv list."""
        args: List[str] = []
        for flag, value in self._tokens:
            args.append(flag)
            if value is not None:
                args.append(value)
        return args

    def has(self, flag: str) -> bool:
        return any(token_flag == flag for token_flag, _ in self._tokens)

    def get(self, flag: str, default: Optional[str] = None) -> Optional[str]:
        """Returns the value of the last occurrence of `flag`, or `default`.

        ffmpeg applies the last of repeated options, so that one wins here too.
        """
        for token_flag, value in reversed(self._tokens):
            if token_flag == flag:
                return value if value is not None else default
        return default

    def remove(self, flag: str) -> "OptionSet":
        """Drops every occurrence of `flag` together with its value."""
        return OptionSet(token for token in self._tokens if token[0] != flag)

    def fix(
        self,
        flag: str,
        value: OptionValue,
        insert: bool = False,
        append: bool = False,
    ) -> "OptionSet":
        """
        Forces `flag` to a single value.

        If the flag is present, the first occurrence takes the new value and
        any later occurrences are dropped. A callable value receives the
        effective (last) value. If the flag is absent, it is prepended when
        `insert` is set, appended when `append` is set, and otherwise the
        option set is returned unchanged.

        Args:
            flag: The option to fix, e.g. "-ss".
            value: The new value, or a callable receiving the current value
                   (an empty string when the flag is absent) and returning
                   the new one.
            insert: Put a missing flag in front of all other tokens.
            append: Put a missing flag after all other tokens.
        """
        if self.has(flag):
            new_value = _resolve(value, self.get(flag, ""))
            tokens: List[Token] = []
            seen = False
            for token in self._tokens:
                if token[0] != flag:
                    tokens.append(token)
                elif not seen:
                    seen = True
                    tokens.append((flag, new_value))
            return OptionSet(tokens)
        if insert:
            return OptionSet(((flag, _resolve(value, "")),) + self._tokens)
        if append:
            return OptionSet(self._tokens + ((flag, _resolve(value, "")),))
        return self

    def extend(self, *args: str) -> "OptionSet":
        """Appends raw argv items, tokenized the same way as the constructor."""
        return OptionSet(self._tokens + tokenize(args))

    def prepend(self, *args: str) -> "OptionSet":
        return OptionSet(tokenize(args) + self._tokens)

    def __iter__(self) -> Iterator[Token]:
        return iter(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, OptionSet):
            return NotImplemented
        return self._tokens == other._tokens

    def __hash__(self) -> int:
        return hash(self._tokens)

    def __repr__(self) -> str:
        return f"OptionSet({shlex.join(self.to_args())!r})"


def _resolve(value: OptionValue, current: str) -> str:
    return value(current) if callable(value) else value

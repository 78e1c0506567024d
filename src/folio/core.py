"""
Core classes and types for the folio build pipeline.
"""
from __future__ import annotations

import abc
import contextlib
import shutil
import tempfile
import typing as t
from pathlib import Path

from .dependencies import Dependency, missing_dependencies
from .pretty_utils import print_with_style, track_progress

if t.TYPE_CHECKING:
    from collections.abc import Mapping, Set


T = t.TypeVar('T')
T2 = t.TypeVar('T2')
ContextDir = t.Literal['input_dir', 'output_dir']
CONTEXT_DIR_KEYS: set[ContextDir] = {'input_dir', 'output_dir'}


class InputBuildSettings(t.TypedDict, total=False):
    """
    TypedDict for defining build settings in a folio config file.
    """
    input_dir: Path
    output_dir: Path
    purge_dirs: bool | None


class BuildSettings(t.TypedDict):
    """
    TypedDict for processed build settings ready for passing to Context.
    """
    input_dir: Path
    output_dir: Path
    purge_dirs: bool


def _rm_children(path: Path):
    if not path.exists():
        return
    for child in path.iterdir():
        if child.is_dir():
            shutil.rmtree(child)
        else:
            child.unlink()


class Context:
    """
    A context and configuration class for building folio sites.

    Template helpers and output transforms are handed in explicitly rather than
    registered globally, so two Contexts never share hooks.
    """
    def __init__(self,
                 settings: BuildSettings,
                 rules: list[Rule],
                 shortcodes: Mapping[str, Shortcode] | None = None,
                 transforms: Mapping[str, Transform] | None = None):
        self.settings = settings
        self.shortcodes: dict[str, Shortcode] = dict(shortcodes or {})
        self.transforms: dict[str, Transform] = dict(transforms or {})
        for hook in [*self.shortcodes.values(), *self.transforms.values()]:
            if not hook.is_available():
                raise StepUnavailableException(hook)
        for shortcode in self.shortcodes.values():
            shortcode.bind(self)
        self.rules: list[Rule] = []
        for rule in rules:
            self.rules.append(rule)
            self.bind(rule.step)

    @t.overload
    def __getitem__(self, key: ContextDir) -> Path: ...
    @t.overload
    def __getitem__(self, key: t.Literal['purge_dirs']) -> bool: ...
    def __getitem__(self, key):
        return self.settings[key]

    def bind(self, step: Step | None):
        """
        Bind a Step to this Context, checking to ensure its availability.
        """
        if step:
            if not step.is_available():
                raise StepUnavailableException(step)
            step.bind(self)

    def find_inputs(self, path: Path):
        """
        Overridable function to get paths to process based on a given @path.
        Default behavior is to recursively search for files but exclude the
        directories themselves.
        """
        for candidate in sorted(path.iterdir()):
            if candidate.is_dir():
                yield from self.find_inputs(candidate)
            else:
                yield candidate

    def match_paths(self, input_paths: list[Path]):
        """
        Match a set of input paths against the Context's defined Rules, and
        associate them with the Steps of those Rules.
        """
        # Tasks run in the order their rules are defined.
        tasks: dict[Step, list[tuple[Path, list[Path]]]]
        tasks = {r.step: [] for r in self.rules if r.step}

        for path in track_progress(input_paths, 'Planning...'):
            for rule in self.rules:
                if match := rule.matcher(self, path):
                    # None halts further rule processing.
                    if not rule.step:
                        break
                    output_paths: list[Path] = []
                    for pathcalc in rule.path_calcs:
                        # A None path calc lets a single rule do processing and
                        # also halt further processing.
                        if not pathcalc:
                            break
                        output_paths.append(pathcalc(self, path, match))
                    else:
                        tasks[rule.step].append((path, output_paths))
                        continue
                    tasks[rule.step].append((path, output_paths))
                    break

        return tasks

    def apply_transforms(self, content: str, output_path: Path):
        """
        Run every registered output transform over @content, in registration
        order.
        """
        for transform in self.transforms.values():
            content = transform(content, output_path)
        return content

    def process(self, input_paths: list[Path] | None = None):
        """
        Process a set of files using the Context's defined rules. If
        @input_paths is empty or None, `self.find_inputs()` will be used to get
        a tree of files to process.
        """
        input_paths = input_paths or list(self.find_inputs(self['input_dir']))

        tasks = self.match_paths(input_paths)

        flattened: list[tuple[Step, Path, list[Path]]] = []
        for step, paths in tasks.items():
            flattened.extend((step, p, ops) for p, ops in paths)

        for step, path, output_paths in track_progress(flattened, 'Processing...'):
            try:
                step(path, output_paths)
            except Exception as e:
                raise BuildError(path, step, e) from e
            log_step(path, output_paths)

    @contextlib.contextmanager
    def staged_output(self):
        """
        Point this Context's output directory at a fresh staging directory for
        the duration of the block. Staged files are published to the real
        output directory only if the block exits cleanly.
        """
        final_dir = self['output_dir']
        final_dir.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(prefix='.folio-', dir=final_dir.parent) as staging:
            self.settings['output_dir'] = Path(staging)
            try:
                yield Path(staging)
            finally:
                self.settings['output_dir'] = final_dir
            if self['purge_dirs']:
                _rm_children(final_dir)
            shutil.copytree(staging, final_dir, dirs_exist_ok=True)

    def run(self, input_paths: list[Path] | None = None):
        """
        Build the site into a staging directory with `self.process()`, then
        publish it to the output directory. Nothing is published if any Step
        fails.
        """
        with self.staged_output():
            self.process(input_paths)


def log_step(source: Path, outputs: list[Path]):
    """
    Log a completed step.
    """
    print_with_style(f'{source} ⇒ {", ".join(str(p) for p in outputs)}', markup=False)


class Matcher(t.Generic[T], abc.ABC):
    """
    Abstract base class for Path Matchers. Provides pre-baked ability to
    combine Matchers with | and &.
    """
    @abc.abstractmethod
    def __call__(self, context: Context, path: Path) -> T:
        ...

    def __or__(self, other: Matcher[T2]):
        return _OrMatcher(self, other)

    def __and__(self, other: Matcher[T2]):
        return _AndMatcher(self, other)


class _OrMatcher(Matcher[T | T2]):
    def __init__(self, left: Matcher[T], right: Matcher[T2]):
        self.left = left
        self.right = right

    def __call__(self, context: Context, path: Path):
        return self.left(context, path) or self.right(context, path)


class _AndMatcher(Matcher[T | T2]):
    def __init__(self, left: Matcher[T], right: Matcher[T2]):
        self.left = left
        self.right = right

    def __call__(self, context: Context, path: Path):
        return self.left(context, path) and self.right(context, path)


class PathCalc(t.Generic[T], abc.ABC):
    """
    Abstract base class for path calculators which use `Matcher` match data to
    determine output paths from input paths.
    """
    @abc.abstractmethod
    def __call__(self, context: Context, path: Path, match: T) -> Path:
        ...


class Rule(t.Generic[T]):
    """
    A single rule for file processing, with a matcher, output path
    calculators, and an optional Step to run.
    """
    def __init__(self,
                 matcher: Matcher[T],
                 path_calc: t.Sequence[PathCalc[T] | None] | PathCalc[T] | None,
                 step: Step | None = None):
        self.matcher = matcher
        self.step = step
        if not isinstance(path_calc, t.Sequence):
            path_calc = [path_calc]
        self.path_calcs = list(path_calc)


class Requirements:
    """
    Mixin for build hooks that need optional libraries. A hook is available
    when every Dependency it lists is installed.
    """
    @classmethod
    def get_dependencies(cls) -> Set[Dependency]:
        return set()

    @classmethod
    def is_available(cls) -> bool:
        return not missing_dependencies(cls.get_dependencies())


class Step(Requirements, abc.ABC):
    """
    Abstract base class for Steps, individual processing stages used to build a
    full ruleset.
    """
    context: Context
    _step_registry: list[t.Type[Step]] = []

    def __init_subclass__(cls, **kw):
        super().__init_subclass__(**kw)
        cls._step_registry.append(cls)

    @classmethod
    def get_all_steps(cls):
        """
        Return a list of all currently known Steps.
        """
        return list(cls._step_registry)

    @classmethod
    def get_available_steps(cls):
        """
        Return a list of all currently known Steps whose requirements are met.
        """
        return [s for s in cls._step_registry if s.is_available()]

    def bind(self, context: Context):
        """
        Bind this Step to a Context.
        """
        self.context = context

    @abc.abstractmethod
    def __call__(self, path: Path, output_paths: list[Path]) -> None:
        ...


class Shortcode(Requirements, abc.ABC):
    """
    A named function template authors can call to generate markup at build
    time. Shortcodes are bound to their Context so they can find its
    directories.
    """
    context: Context

    def bind(self, context: Context):
        self.context = context

    @abc.abstractmethod
    def __call__(self, *args: t.Any, **kwargs: t.Any) -> str:
        ...


class Transform(Requirements, abc.ABC):
    """
    A build-time hook that rewrites generated content before it is written.
    """
    @abc.abstractmethod
    def __call__(self, content: str, output_path: Path) -> str:
        ...


class StepUnavailableException(Exception):
    """
    Exception raised when a step, shortcode, or transform to be used is
    unavailable due to missing dependencies.
    """
    def __init__(self, step: Step | Shortcode | Transform, *args: t.Any):
        self.step = step
        super().__init__(*args)


class BuildError(Exception):
    """
    Exception raised when a Step fails while processing an input file. The
    whole build is abandoned.
    """
    def __init__(self, path: Path, step: Step, error: BaseException):
        self.path = path
        self.step = step
        self.error = error
        super().__init__(f'{type(step).__name__} failed on {path}: {error}')

"""
folio's command line interface. The helpers here also make it easy to build
project-specific CLIs.
"""
from __future__ import annotations

import argparse
import importlib
import runpy
import sys
import typing as t
from pathlib import Path

from .core import (
    BuildError, BuildSettings, Context, InputBuildSettings, Rule, Shortcode, Step,
    StepUnavailableException, Transform,
)
from .dependencies import missing_dependencies
from .pretty_utils import print_with_style


class BuildNamespace:
    """
    Internal used to preserve typing between InputBuildSettings, argparse, and
    BuildSettings.
    """
    input_dir: Path
    output_dir: Path
    purge_dirs: bool | None

    def __init__(self, settings: InputBuildSettings | None = None):
        if settings:
            self.__dict__.update(settings)

    def to_build_settings(self):
        """
        Convert this argparse-oriented namespace into a Context-ready
        BuildSettings. Output directories are purged unless asked otherwise.
        """
        return BuildSettings(
            input_dir=self.input_dir,
            output_dir=self.output_dir,
            purge_dirs=self.purge_dirs is not False,
        )


class SiteConfig(t.NamedTuple):
    """
    The names a folio config file may define.
    """
    label: str
    settings: InputBuildSettings | None
    rules: list[Rule] | None
    shortcodes: dict[str, Shortcode] | None
    transforms: dict[str, Transform] | None
    context: Context | None

    @classmethod
    def from_namespace(cls, label: str, namespace: t.Mapping[str, t.Any]):
        return cls(
            label,
            namespace.get('SETTINGS'),
            namespace.get('RULES'),
            namespace.get('SHORTCODES'),
            namespace.get('TRANSFORMS'),
            namespace.get('CONTEXT'),
        )


def parse_settings_args(settings: InputBuildSettings | None = None, argv: list[str] | None = None, **kw):
    """
    Combine an instance of InputBuildSettings with CLI arguments to produce a
    BuildNamespace, which can be easily turned into BuildSettings.
    """
    namespace = BuildNamespace(settings)
    defaults = settings or {}

    parser = argparse.ArgumentParser(**kw)
    parser.add_argument('-i', '--input',
                        help='input directory with page sources and assets',
                        type=Path,
                        dest='input_dir',
                        default=defaults.get('input_dir', Path('src')))
    parser.add_argument('-o', '--output',
                        help='output directory for the built site',
                        type=Path,
                        dest='output_dir',
                        default=defaults.get('output_dir', Path('dist')))
    parser.add_argument('--purge',
                        help='empty the output directory before publishing a build (default)',
                        action=argparse.BooleanOptionalAction,
                        dest='purge_dirs',
                        default=defaults.get('purge_dirs'))

    return parser.parse_args(argv, namespace=namespace)


def run_from_rules(settings: InputBuildSettings | None,
                   rules: list[Rule],
                   shortcodes: dict[str, Shortcode] | None = None,
                   transforms: dict[str, Transform] | None = None,
                   context_cls: t.Type[Context] = Context,
                   **kw):
    """
    Build a new Context from settings, rules, hooks, and command line
    arguments. Then, execute a build using the new Context.
    """
    final_settings = parse_settings_args(settings, **kw)
    context = context_cls(final_settings.to_build_settings(), rules, shortcodes, transforms)
    context.run()
    return context


def load_config(module: t.Any | None, config_file: Path | None) -> SiteConfig:
    """
    Load a config from an imported module or a config file path, falling back
    to the default portfolio configuration.
    """
    if config_file:
        return SiteConfig.from_namespace(str(config_file), runpy.run_path(str(config_file)))
    if module is None:
        module = importlib.import_module('folio.site')
    return SiteConfig.from_namespace(f'-m {module.__name__}', vars(module))


def pprint_step(step: t.Type[Step]):
    """
    Prettily display dependency information for the given Step class.
    """
    missing = missing_dependencies(step.get_dependencies())
    if missing:
        text = ', '.join(str(d) for d in missing)
        print_with_style(f'✗ {step.__name__} (missing: {text})', style='red')
    else:
        print_with_style(f'✓ {step.__name__}', style='green')


def pprint_missing_deps(hook: Step | Shortcode | Transform):
    """
    Prettily display an error for the given hook with missing dependencies.
    """
    print_with_style(
        f'{type(hook).__name__} is unavailable due to missing dependencies!',
        file='stderr',
        style='red'
    )
    missing = missing_dependencies(hook.get_dependencies())
    for dep in sorted(hook.get_dependencies(), key=str):
        if dep in missing:
            print_with_style(f'✗ {dep}: {dep.install_hint}', style='red')
        else:
            print_with_style(f'✓ {dep}', style='green')


def audit_steps(rules: list[Rule]):
    """
    Print which Steps are available, unavailable, and used by @rules.
    """
    all_steps = set(Step.get_all_steps())
    available_steps = set(Step.get_available_steps())
    unavailable_steps = all_steps - available_steps
    used_steps = {r.step.__class__ for r in rules if r.step}

    groups = {
        'Available steps': available_steps,
        'Unavailable steps': unavailable_steps,
        'Used steps': used_steps,
    }
    for group_label, step_group in groups.items():
        print_with_style(f'{group_label} ({len(step_group)})')
        for step in sorted(step_group, key=lambda s: s.__name__):
            pprint_step(step)


def main(arguments: list[str] | None = None):
    """
    folio main function. Finds or creates a Context using a config file (the
    default portfolio configuration if none is given) and command line
    arguments, then executes a build using it. Exits non-zero if the build
    fails.
    """
    parser = argparse.ArgumentParser(description='Build a folio site.')
    parser.add_argument('--audit-steps',
                        help=('show information about available, unavailable, '
                              'and used steps, instead of building the site'),
                        action='store_true')
    group = parser.add_mutually_exclusive_group()
    group.add_argument('-m',
                       help='import path of a config module to build',
                       type=importlib.import_module,
                       dest='module',
                       default=None)
    group.add_argument('config_file',
                       nargs='?',
                       help='file path to a config file to build',
                       type=Path,
                       default=None)
    parser.add_argument('-s', '--serve',
                        help='serve the output directory over HTTP after building',
                        action='store_true')
    parser.add_argument('-p', '--port',
                        help='port to serve from',
                        type=int,
                        default=8080)

    args, remaining = parser.parse_known_args(arguments)
    config = load_config(args.module, args.config_file)

    if args.audit_steps:
        audit_rules = config.context.rules if config.context else config.rules
        if not audit_rules:
            raise RuntimeError('folio config files must have a RULES or CONTEXT attribute!')
        audit_steps(audit_rules)
        return

    if not (config.context or config.rules):
        print_with_style(
            'folio config files must have a RULES or CONTEXT attribute!',
            file='stderr',
            style='red'
        )
        sys.exit(1)

    try:
        if config.context:
            context = config.context
            context.run()
        else:
            context = run_from_rules(
                config.settings,
                t.cast('list[Rule]', config.rules),
                config.shortcodes,
                config.transforms,
                argv=remaining,
                prog=f'folio {config.label}'
            )
    except StepUnavailableException as e:
        pprint_missing_deps(e.step)
        sys.exit(1)
    except BuildError as e:
        print_with_style(f'Build failed: {e}', file='stderr', style='red', markup=False)
        sys.exit(1)

    if args.serve:
        from .server import serve
        serve(args.port, context['output_dir'])

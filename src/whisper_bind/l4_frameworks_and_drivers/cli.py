"""CLI entry point for whisper-bind."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from pydantic import ValidationError

from whisper_bind import __version__
from whisper_bind.l1_entities.config import AppConfig
from whisper_bind.l1_entities.errors import AudioFileNotFoundError, WhisperBindError
from whisper_bind.l1_entities.transcript import Segment, format_timestamp


def _err(msg: str) -> None:
    click.echo(msg, err=True)


def _fail(exc: Exception) -> None:
    _err(f'Error: {exc}')
    sys.exit(1)


def _progress_printer(label: str):
    last = [-1]

    def _on_progress(percent: int) -> None:
        if percent != last[0]:
            last[0] = percent
            _err(f'  Downloading {label}: {percent}%')

    return _on_progress


def _apply_overrides(config: AppConfig, overrides: dict) -> AppConfig:
    from whisper_bind.l3_interface_adapters.gateways.yaml_config_loader import (  # noqa: PLC0415 -- deferred: yaml stack not loaded on --help
        deep_merge,
    )

    if not overrides:
        return config
    return AppConfig.model_validate(deep_merge(config.model_dump(), overrides))


def _format_segment(seg: Segment) -> str:
    return f'[{format_timestamp(seg.start_time)} --> {format_timestamp(seg.end_time)}] {seg.text.strip()}'


@click.group()
@click.option(
    '-c',
    '--config',
    'config_path',
    default=None,
    type=click.Path(exists=True, dir_okay=False),
    help='Path to YAML config file.',
)
@click.option('-v', '--verbose', is_flag=True, help='Log debug output to stderr.')
@click.option('--log-file', default=None, type=click.Path(dir_okay=False), help='Also write debug logs to this file.')
@click.version_option(version=__version__)
@click.pass_context
def cli(ctx: click.Context, config_path, verbose, log_file):
    """whisper-bind -- run whisper.cpp transcription through prebuilt native libraries."""
    from whisper_bind.l3_interface_adapters.gateways.yaml_config_loader import (  # noqa: PLC0415 -- deferred: yaml stack not loaded on --help
        YamlConfigLoader,
    )
    from whisper_bind.l4_frameworks_and_drivers.config import (  # noqa: PLC0415 -- deferred: not needed for --help
        build_app_config,
    )
    from whisper_bind.l4_frameworks_and_drivers.logging_setup import (  # noqa: PLC0415 -- deferred: not needed for --help
        setup_logging,
    )

    setup_logging(verbose=verbose, log_file=Path(log_file) if log_file else None)

    try:
        raw = YamlConfigLoader().load_raw(config_path)
        ctx.obj = build_app_config(raw)
    except (FileNotFoundError, ValidationError) as e:
        _fail(e)


@cli.command()
@click.argument('audio', type=click.Path(dir_okay=False))
@click.option('-m', '--model', default=None, help='Model name (e.g. tiny.en) or path to a ggml model file.')
@click.option('-t', '--threads', 'n_threads', default=None, type=click.IntRange(min=1), help='Engine threads per decode.')
@click.option(
    '-p',
    '--parallel',
    'n_workers',
    default=None,
    type=click.IntRange(min=1),
    help='Split the audio across this many concurrent decoders.',
)
@click.option('-l', '--language', default=None, help="Spoken language code, or 'auto'.")
@click.option('--translate/--no-translate', default=None, help='Translate to English.')
@click.option('--models-dir', default=None, type=click.Path(file_okay=False), help='Directory for downloaded models.')
@click.option(
    '--decoder',
    default='native',
    type=click.Choice(['native', 'ffmpeg']),
    show_default=True,
    help='Audio decoder used for the input file.',
)
@click.pass_obj
def transcribe(config: AppConfig, audio, model, n_threads, n_workers, language, translate, models_dir, decoder):
    """Transcribe an AUDIO file and print timed segments."""
    from whisper_bind.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: native stack not loaded on --help
        DependencyContainer,
    )

    transcription: dict = {}
    if n_threads is not None:
        transcription['n_threads'] = n_threads
    if n_workers is not None:
        transcription['parallel_workers'] = n_workers
    if language is not None:
        transcription['language'] = language
    if translate is not None:
        transcription['translate'] = translate
    overrides: dict = {'transcription': transcription} if transcription else {}
    if models_dir:
        overrides['models'] = {'base_dir': models_dir}
    config = _apply_overrides(config, overrides)

    if not Path(audio).exists():
        _fail(AudioFileNotFoundError(f'Audio file not found: {audio}'))

    tc = config.transcription
    model_name = model or config.models.default
    _err(f'Whisper model: {model_name}')

    try:
        with (
            DependencyContainer(config, on_progress=_progress_printer(model_name), audio_decoder=decoder) as container,
            container.open_session(model_name) as session,
        ):
            if tc.parallel_workers > 1:
                segments = session.transcribe_parallel(Path(audio), tc.parallel_workers, n_threads=tc.n_threads)
            else:
                segments = session.transcribe(Path(audio), tc.n_threads)
    except WhisperBindError as e:
        _fail(e)

    for seg in segments:
        click.echo(_format_segment(seg))
    _err(f'Transcription complete — {len(segments)} segments.')


@cli.command('download-model')
@click.argument('name')
@click.option('--models-dir', default=None, type=click.Path(file_okay=False), help='Directory for downloaded models.')
@click.pass_obj
def download_model(config: AppConfig, name, models_dir):
    """Download model NAME (if needed) and print its local path."""
    from whisper_bind.l3_interface_adapters.gateways.hf_model_resolver import (  # noqa: PLC0415 -- deferred: hub client not loaded on --help
        HfModelResolver,
    )

    resolver = HfModelResolver(base_dir=models_dir or config.models.base_dir, on_progress=_progress_printer(name))
    try:
        path = resolver.resolve(name)
    except WhisperBindError as e:
        _fail(e)
    click.echo(path)


@cli.command('fetch-libs')
@click.option('--libs-version', default=None, help='Archive revision to fetch (defaults to config).')
@click.pass_obj
def fetch_libs(config: AppConfig, libs_version):
    """Download the prebuilt native libraries for this platform."""
    from whisper_bind.l3_interface_adapters.gateways.library_downloader import (  # noqa: PLC0415 -- deferred: hub client not loaded on --help
        LibraryDownloader,
    )
    from whisper_bind.l3_interface_adapters.gateways.platform_detector import (  # noqa: PLC0415 -- deferred: not needed for --help
        current_platform,
    )

    try:
        platform = current_platform()
        downloader = LibraryDownloader(config.library.lib_dir, on_progress=_progress_printer(platform.identifier))
        downloader.ensure_present(platform, libs_version or config.library.version)
    except WhisperBindError as e:
        _fail(e)
    click.echo(downloader.platform_dir(platform))


@cli.command()
@click.pass_obj
def info(config: AppConfig):
    """Show the detected platform and cache locations."""
    from whisper_bind.l3_interface_adapters.gateways.library_downloader import (  # noqa: PLC0415 -- deferred: hub client not loaded on --help
        LibraryDownloader,
    )
    from whisper_bind.l3_interface_adapters.gateways.paths import (  # noqa: PLC0415 -- deferred: not needed for --help
        default_model_dir,
    )
    from whisper_bind.l3_interface_adapters.gateways.platform_detector import (  # noqa: PLC0415 -- deferred: not needed for --help
        current_platform,
    )

    try:
        platform = current_platform()
    except WhisperBindError as e:
        _fail(e)

    downloader = LibraryDownloader(config.library.lib_dir)
    click.echo(f'platform:   {platform} (.{platform.extension})')
    click.echo(f'libraries:  {downloader.platform_dir(platform)}')
    click.echo(f'installed:  {"yes" if downloader.is_present(platform) else "no"}')
    click.echo(f'models:     {config.models.base_dir or default_model_dir()}')

"""CLI entry point for offline-scribe."""

from __future__ import annotations

import sys
from pathlib import Path

import click

from offline_scribe import __version__
from offline_scribe.l3_interface_adapters.presenters.transcript_formatter import FORMATS


def _overrides(
    model: str | None,
    lang: str | None,
    translate: bool,
    word_timestamps: bool,
    max_sentence_len: int | None,
    temperature: float | None,
    max_text_ctx: int | None,
    prompt: str | None,
    threads: int | None,
    gpu_device: int | None,
    vad_model: str | None,
    speaker_model: str | None,
) -> dict:
    """Translate command-line flags into a config override dict (unset flags are omitted)."""
    model_section = {k: v for k, v in {'name': model, 'gpu_device': gpu_device}.items() if v is not None}
    transcription = {
        k: v
        for k, v in {
            'lang': lang,
            'max_sentence_len': max_sentence_len,
            'temperature': temperature,
            'max_text_ctx': max_text_ctx,
            'init_prompt': prompt,
            'n_threads': threads,
        }.items()
        if v is not None
    }
    if translate:
        transcription['translate'] = True
    if word_timestamps:
        transcription['word_timestamps'] = True
    diarization = {
        k: v for k, v in {'vad_model_path': vad_model, 'speaker_model_path': speaker_model}.items() if v is not None
    }

    overrides: dict = {}
    for key, section in (('model', model_section), ('transcription', transcription), ('diarization', diarization)):
        if section:
            overrides[key] = section
    return overrides


def _err(msg: str) -> None:
    click.echo(msg, err=True)


@click.command()
@click.argument('audio_file', type=click.Path(exists=True, dir_okay=False))
@click.option(
    '-c', '--config', 'config_path', default=None, type=click.Path(exists=True), help='Path to YAML config file.'
)
@click.option('-m', '--model', default=None, help='Model name (e.g. large-v3-turbo) or path to a ggml model file.')
@click.option('-l', '--lang', default=None, help='Language code; auto-detect when omitted.')
@click.option('--translate', is_flag=True, help='Translate into English.')
@click.option('--word-timestamps', is_flag=True, help='Split segments on word boundaries.')
@click.option('--max-sentence-len', type=int, default=None, help='Max segment length with --word-timestamps.')
@click.option('--temperature', type=float, default=None, help='Sampling temperature.')
@click.option('--max-text-ctx', type=int, default=None, help='Cap on the decoder text context.')
@click.option('--prompt', default=None, help='Initial prompt to prime decoding.')
@click.option('--threads', type=int, default=None, help='Number of inference threads.')
@click.option('--gpu-device', type=int, default=None, help='GPU device index.')
@click.option('--vad-model', type=click.Path(exists=True, dir_okay=False), default=None, help='Segmentation model.')
@click.option(
    '--speaker-model', type=click.Path(exists=True, dir_okay=False), default=None, help='Speaker embedding model.'
)
@click.option('-f', '--format', 'fmt', type=click.Choice(FORMATS), default='text', show_default=True)
@click.option('-o', '--output', type=click.Path(dir_okay=False), default=None, help='Write transcript to a file.')
@click.option('-v', '--verbose', is_flag=True, help='Enable debug logging.')
@click.option('--log-file', type=click.Path(dir_okay=False), default=None, help='Write debug log to a file.')
@click.version_option(version=__version__)
def cli(
    audio_file,
    config_path,
    model,
    lang,
    translate,
    word_timestamps,
    max_sentence_len,
    temperature,
    max_text_ctx,
    prompt,
    threads,
    gpu_device,
    vad_model,
    speaker_model,
    fmt,
    output,
    verbose,
    log_file,
):
    """offline-scribe -- transcribe an audio file locally with whisper.cpp."""
    from offline_scribe.l1_entities.errors import (  # noqa: PLC0415 -- deferred: not needed for --help
        ModelResolutionError,
        TranscriptionError,
    )
    from offline_scribe.l1_entities.transcript import (  # noqa: PLC0415 -- deferred: not needed for --help
        format_wall_time,
    )
    from offline_scribe.l2_use_cases.progress_bridge import (  # noqa: PLC0415 -- deferred: not needed for --help
        TranscribeCallbacks,
    )
    from offline_scribe.l3_interface_adapters.gateways.yaml_config_loader import (  # noqa: PLC0415 -- deferred: yaml stack not loaded on --help
        YamlConfigLoader,
    )
    from offline_scribe.l3_interface_adapters.presenters.transcript_formatter import (  # noqa: PLC0415 -- deferred: not needed for --help
        format_transcript,
    )
    from offline_scribe.l4_frameworks_and_drivers.config import (  # noqa: PLC0415 -- deferred: not needed for --help
        build_app_config,
    )
    from offline_scribe.l4_frameworks_and_drivers.container import (  # noqa: PLC0415 -- deferred: engine stack not loaded on --help
        DependencyContainer,
    )
    from offline_scribe.l4_frameworks_and_drivers.logging_setup import (  # noqa: PLC0415 -- deferred: not needed for --help
        setup_logging,
    )

    setup_logging(verbose=verbose, log_file=Path(log_file) if log_file else None)

    overrides = _overrides(
        model,
        lang,
        translate,
        word_timestamps,
        max_sentence_len,
        temperature,
        max_text_ctx,
        prompt,
        threads,
        gpu_device,
        vad_model,
        speaker_model,
    )
    try:
        raw = YamlConfigLoader().load_raw(config_path, overrides=overrides or None)
        config = build_app_config(raw)
    except (FileNotFoundError, ValueError) as e:
        _err(f'Error: {e}')
        sys.exit(1)

    def _on_download(percent: int) -> None:
        _err(f'  Downloading {config.model.name}: {percent}%')

    container = DependencyContainer(config, on_download_progress=_on_download)

    def _on_progress(percent: int) -> None:
        _err(f'  Transcribing: {percent}%')

    context = None
    try:
        model_path = container.model_resolver.resolve(config.model.name)
        _err(f'Whisper model: {model_path}')
        context = container.create_context.execute(
            Path(model_path),
            gpu_device=config.model.gpu_device,
            use_gpu=config.model.use_gpu,
        )
        transcript = container.transcribe.execute(
            context,
            config.transcription.options_for(audio_file),
            callbacks=TranscribeCallbacks(progress=_on_progress),
            diarize_options=config.diarization.to_options(),
        )
    except (TranscriptionError, ModelResolutionError) as e:
        _err(f'Error: {e}')
        sys.exit(1)
    finally:
        if context is not None:
            context.close()

    rendered = format_transcript(transcript, fmt)
    if output:
        Path(output).write_text(rendered, encoding='utf-8')
        _err(f'Transcript written to {output}')
    else:
        click.echo(rendered, nl=False)
    audio_len = format_wall_time(transcript.segments[-1].stop_sec)
    _err(f'Done — {len(transcript.segments)} segments, {audio_len} of audio in {transcript.processing_time_sec:.1f}s.')
    if transcript.speakers:
        _err(f'Speakers: {", ".join(transcript.speakers)}')

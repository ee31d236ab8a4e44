#!/usr/bin/env python3
"""
Command-line interface for session-archive.

Provides commands to export, inspect, and unpack chat session archives, and to
extract file artifacts from fenced code blocks.
"""

from __future__ import annotations

import asyncio
import traceback
import uuid
from pathlib import Path
from typing import Literal

import httpx
import pydantic
import typer

from session_archive.cli.logger import CLILogger
from session_archive.config.cli import settings
from session_archive.exceptions import SessionArchiveError
from session_archive.mime import format_bytes
from session_archive.models import Attachment, Session
from session_archive.paths import archive_filename
from session_archive.services.archive import SessionArchiveWriter
from session_archive.services.bundle import bundle_message_files
from session_archive.services.extract import extract_code_blocks
from session_archive.services.restore import SessionArchiveReader
from session_archive.storage.gist import GistStorage
from session_archive.storage.local import LocalFileSystemStorage

app = typer.Typer(
    name='session-archive',
    help='Export, inspect, and unpack chat session archives',
    add_completion=False,
)

GIST_SCHEME = 'gist://'


def _generate_session_id() -> str:
    """Short uppercase session label (8 hex chars)."""
    return uuid.uuid4().hex[:8].upper()


def _fail(message: str) -> typer.Exit:
    typer.secho(f'Error: {message}', fg=typer.colors.RED, err=True)
    return typer.Exit(1)


def _fail_archive(error: SessionArchiveError) -> typer.Exit:
    """Report an archive failure with its specific kind."""
    typer.secho(f'Error [{error.kind}]: {error}', fg=typer.colors.RED, err=True)
    return typer.Exit(1)


async def _load_archive_bytes(archive: str, gist_token: str | None, logger: CLILogger) -> bytes:
    """Read archive bytes from a local path or gist://<gist-id>."""
    if archive.startswith(GIST_SCHEME):
        gist_id = archive[len(GIST_SCHEME) :]
        if not gist_id:
            raise _fail('Gist ID required in format gist://<gist-id>')

        # Public gists don't need auth for reading, but use it if provided
        token = gist_token or settings.GITHUB_TOKEN or ''
        storage = GistStorage(token=token, gist_id=gist_id)
        logger.info(f'Downloading from Gist: {gist_id}')
        filename = await storage.find_archive()
        data = await storage.load(filename)
        logger.info(f'Downloaded {filename}: {len(data):,} bytes')
        return data

    archive_path = Path(archive)
    if not archive_path.is_file():
        raise _fail(f'Archive not found: {archive_path}')
    return archive_path.read_bytes()


def _read_session(data: bytes, logger: CLILogger) -> Session:
    return SessionArchiveReader().read(data, logger)


# ==============================================================================
# create
# ==============================================================================


@app.command()
def create(
    session_file: Path = typer.Argument(..., help='Session JSON file ({"settings": {...}, "messages": [...]})'),
    output: str = typer.Argument(..., help='Output zip path or Gist URL (gist://<gist-id> or gist://)'),
    session_id: str | None = typer.Option(None, '--session-id', '-s', help='Session label (default: generated)'),
    gist_token: str | None = typer.Option(None, '--gist-token', help='GitHub token (or use GITHUB_TOKEN env)'),
    gist_visibility: Literal['public', 'secret'] = typer.Option(
        'secret', '--gist-visibility', help='Gist visibility (public or secret)'
    ),
    gist_description: str = typer.Option('Chat Session Archive', '--gist-description', help='Gist description'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Export a session JSON file to a zip archive (local file or GitHub Gist)."""
    asyncio.run(
        _create_async(session_file, output, session_id, gist_token, gist_visibility, gist_description, verbose)
    )


async def _create_async(
    session_file: Path,
    output: str,
    session_id: str | None,
    gist_token: str | None,
    gist_visibility: Literal['public', 'secret'],
    gist_description: str,
    verbose: bool,
) -> None:
    """Async implementation of create command."""
    logger = CLILogger(verbose=verbose)

    if not session_file.is_file():
        raise _fail(f'Session file not found: {session_file}')

    try:
        session = Session.model_validate_json(session_file.read_text(encoding='utf-8'))
    except pydantic.ValidationError as e:
        raise _fail(f'Invalid session file {session_file}:\n{e}')

    resolved_session_id = session_id or _generate_session_id()
    use_gist = output.startswith(GIST_SCHEME)

    storage: GistStorage | LocalFileSystemStorage
    if use_gist:
        token = gist_token or settings.GITHUB_TOKEN
        if not token:
            typer.secho('Error: GitHub token required for Gist storage.', fg=typer.colors.RED, err=True)
            typer.echo('Provide via --gist-token or set GITHUB_TOKEN environment variable.')
            raise typer.Exit(1)
        gist_id = output[len(GIST_SCHEME) :] or None
        storage = GistStorage(token=token, gist_id=gist_id, visibility=gist_visibility, description=gist_description)
        filename = archive_filename(resolved_session_id)
        logger.info(f'Creating Gist archive: {filename}')
    else:
        output_file = Path(output)
        if output_file.exists():
            raise _fail(f'File already exists: {output_file}\nUse a different filename or delete the existing file first.')
        if not output_file.parent.resolve().exists():
            raise _fail(f'Output directory does not exist: {output_file.parent}. Please create it first.')
        storage = LocalFileSystemStorage(output_file.parent.resolve())
        filename = output_file.name
        logger.info(f'Creating archive: {output}')

    writer = SessionArchiveWriter(settings)
    try:
        metadata = await writer.save(session, resolved_session_id, storage, filename, logger)
    except SessionArchiveError as e:
        raise _fail_archive(e)
    except (ValueError, httpx.HTTPError) as e:
        logger.error(f'Failed to save archive: {e}')
        if verbose:
            traceback.print_exc()
        raise typer.Exit(1)

    if isinstance(storage, GistStorage):
        typer.secho('✓ Archive uploaded to GitHub Gist!', fg=typer.colors.GREEN)
        typer.echo(f'  URL: {metadata.file_path}')
        typer.echo(f'  Gist ID: {storage.gist_id}')
    else:
        typer.secho('✓ Archive created successfully!', fg=typer.colors.GREEN)
        typer.echo(f'  Path: {metadata.file_path}')
    typer.echo(f'  Session: {metadata.session_id}')
    typer.echo(f'  Size: {format_bytes(metadata.size_bytes)}')
    typer.echo(f'  Messages: {metadata.message_count}, attachments: {metadata.attachment_count}')


# ==============================================================================
# inspect / dump
# ==============================================================================


@app.command()
def inspect(
    archive: str = typer.Argument(..., help='Archive path or Gist URL (gist://<gist-id>)'),
    gist_token: str | None = typer.Option(None, '--gist-token', help='GitHub token for private gists'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Read an archive and print its settings and messages."""
    asyncio.run(_inspect_async(archive, gist_token, verbose))


async def _inspect_async(archive: str, gist_token: str | None, verbose: bool) -> None:
    """Async implementation of inspect command."""
    logger = CLILogger(verbose=verbose)

    try:
        session = _read_session(await _load_archive_bytes(archive, gist_token, logger), logger)
    except SessionArchiveError as e:
        raise _fail_archive(e)
    except (ValueError, httpx.HTTPError) as e:
        raise _fail(str(e))

    typer.secho('Settings:', bold=True)
    for key, value in session.settings.items():
        typer.echo(f'  {key}: {value!r}')

    typer.echo()
    typer.secho(f'Messages ({len(session.messages)}):', bold=True)
    for index, message in enumerate(session.messages):
        alert = ' [alert]' if message.is_alert else ''
        typer.echo(
            f'  [{index}] {message.role}{alert} {message.timestamp.isoformat()} '
            f'- {len(message.content):,} chars, {len(message.files)} files'
        )
        for attachment in message.files:
            typer.echo(f'      {attachment.path} ({attachment.mime_type}, {format_bytes(attachment.size)})')

    if logger.warnings:
        typer.echo()
        typer.secho(f'{logger.warnings} warning(s) while reading the archive', fg=typer.colors.YELLOW)


@app.command()
def dump(
    archive: str = typer.Argument(..., help='Archive path or Gist URL (gist://<gist-id>)'),
    output: Path = typer.Argument(..., help='Output session JSON path'),
    gist_token: str | None = typer.Option(None, '--gist-token', help='GitHub token for private gists'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Read an archive and write the session as JSON (inverse of create)."""
    asyncio.run(_dump_async(archive, output, gist_token, verbose))


async def _dump_async(archive: str, output: Path, gist_token: str | None, verbose: bool) -> None:
    """Async implementation of dump command."""
    logger = CLILogger(verbose=verbose)

    if output.exists():
        raise _fail(f'File already exists: {output}')

    try:
        session = _read_session(await _load_archive_bytes(archive, gist_token, logger), logger)
    except SessionArchiveError as e:
        raise _fail_archive(e)
    except (ValueError, httpx.HTTPError) as e:
        raise _fail(str(e))

    output.write_text(session.model_dump_json(indent=2), encoding='utf-8')
    typer.secho(f'✓ Session written to {output}', fg=typer.colors.GREEN)
    typer.echo(f'  Messages: {len(session.messages)}, settings: {len(session.settings)}')


# ==============================================================================
# extract / bundle
# ==============================================================================


@app.command()
def extract(
    text_file: Path = typer.Argument(..., help='Text or markdown file containing fenced code blocks'),
    output_dir: Path = typer.Argument(..., help='Directory to write extracted files into'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Write every ```lang:path fenced block of a text file to OUTPUT_DIR/<path>."""
    logger = CLILogger(verbose=verbose)

    if not text_file.is_file():
        raise _fail(f'File not found: {text_file}')

    try:
        attachments = extract_code_blocks(text_file.read_text(encoding='utf-8')).attachments()
    except pydantic.ValidationError as e:
        raise _fail(f'Code block has an unusable file path:\n{e}')

    if not attachments:
        typer.echo('No code blocks with file paths found.')
        return

    output_dir.mkdir(parents=True, exist_ok=True)
    for attachment in attachments:
        target = output_dir / attachment.path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(attachment.decoded())
        logger.info(f'Wrote {target} ({format_bytes(attachment.size)})')

    typer.secho(f'✓ Extracted {len(attachments)} files to {output_dir}', fg=typer.colors.GREEN)
    for attachment in attachments:
        typer.echo(f'  - {attachment.path}')


@app.command()
def bundle(
    archive: str = typer.Argument(..., help='Archive path or Gist URL (gist://<gist-id>)'),
    message_index: int = typer.Argument(..., help='Zero-based message position'),
    output: Path = typer.Argument(..., help='Output zip path'),
    files: list[str] | None = typer.Option(None, '--file', '-f', help='Attachment path to include (repeatable)'),
    gist_token: str | None = typer.Option(None, '--gist-token', help='GitHub token for private gists'),
    verbose: bool = typer.Option(False, '--verbose', '-v', help='Verbose output'),
) -> None:
    """Zip one message's attachments together with its text."""
    asyncio.run(_bundle_async(archive, message_index, output, files, gist_token, verbose))


async def _bundle_async(
    archive: str,
    message_index: int,
    output: Path,
    files: list[str] | None,
    gist_token: str | None,
    verbose: bool,
) -> None:
    """Async implementation of bundle command."""
    logger = CLILogger(verbose=verbose)

    if output.exists():
        raise _fail(f'File already exists: {output}')

    try:
        session = _read_session(await _load_archive_bytes(archive, gist_token, logger), logger)
    except SessionArchiveError as e:
        raise _fail_archive(e)
    except (ValueError, httpx.HTTPError) as e:
        raise _fail(str(e))

    if not 0 <= message_index < len(session.messages):
        raise _fail(f'Message index {message_index} out of range (archive has {len(session.messages)} messages)')

    message = session.messages[message_index]
    selected: list[Attachment] = [f for f in message.files if not files or f.path in files]
    data = bundle_message_files(message, files or None, settings.COMPRESSION_LEVEL)
    if data is None:
        raise _fail(f'No attachments selected in message {message_index}')

    output.write_bytes(data)
    typer.secho(f'✓ Bundle written to {output}', fg=typer.colors.GREEN)
    typer.echo(f'  Files: {len(selected)} + message.md, message.txt')


if __name__ == '__main__':
    app()

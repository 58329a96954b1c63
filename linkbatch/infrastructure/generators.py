import asyncio
import logging
import shlex
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Optional

import aiohttp

from linkbatch.domain.exceptions import GenerationError
from linkbatch.domain.interfaces import Generator
from linkbatch.domain.models import LinkSet, LinkSetKind
from linkbatch.infrastructure.filesystem import open_text

logger = logging.getLogger(__name__)

# N-Triples first; Virtuoso answers text/plain with N-Triples as well
NTRIPLES_ACCEPT = "application/n-triples, text/plain;q=0.9"
CHUNK_SIZE = 64 * 1024
DEFAULT_SPARQL_TIMEOUT = 600


async def _download(url: str, target: Path, timeout: aiohttp.ClientTimeout, **request) -> None:
    """Streams the body of an HTTP response into `target`."""
    method = request.pop("method", "GET")
    try:
        async with aiohttp.ClientSession(timeout=timeout) as session:
            async with session.request(method, url, **request) as response:
                if response.status != 200:
                    body = (await response.text())[:200]
                    raise GenerationError(f"{url} answered {response.status}: {body}")
                with open(target, "wb") as out:
                    async for chunk in response.content.iter_chunked(CHUNK_SIZE):
                        out.write(chunk)
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise GenerationError(f"request to {url} failed: {e}") from e


def _copy_triples(source: Path, target: Path) -> None:
    with open_text(source) as stream, open(target, "w", encoding="utf-8") as out:
        for line in stream:
            out.write(line)


class StaticNTriplesGenerator:
    """Links shipped as an N-Triples file, local (plain, bz2, gzip) or at an http(s) URL."""

    def __init__(self, timeout: int = DEFAULT_SPARQL_TIMEOUT):
        self.timeout = aiohttp.ClientTimeout(total=timeout)

    async def generate(self, link_set: LinkSet, target: Path) -> None:
        location = link_set.file or ""
        if location.startswith(("http://", "https://")):
            suffix = "".join(Path(location.split("?", 1)[0]).suffixes[-1:])
            with tempfile.TemporaryDirectory() as tmp:
                downloaded = Path(tmp) / f"download{suffix}"
                await _download(location, downloaded, self.timeout)
                await asyncio.to_thread(_copy_triples, downloaded, target)
            return

        source = link_set.resolve(location)
        if not source.is_file():
            raise GenerationError(f"N-Triples file {source} does not exist")
        try:
            await asyncio.to_thread(_copy_triples, source, target)
        except (OSError, EOFError) as e:
            raise GenerationError(f"could not read {source}: {e}") from e


class SparqlConstructGenerator:
    """Runs a CONSTRUCT query against a SPARQL endpoint."""

    def __init__(self, timeout: int = DEFAULT_SPARQL_TIMEOUT):
        self.timeout = aiohttp.ClientTimeout(total=timeout, connect=30)

    async def generate(self, link_set: LinkSet, target: Path) -> None:
        logger.debug(f"Querying {link_set.endpoint} for {link_set.label}")
        await _download(
            link_set.endpoint,
            target,
            self.timeout,
            method="POST",
            data={"query": link_set.query},
            headers={"Accept": NTRIPLES_ACCEPT},
        )


async def _run(args, cwd: Path, stdout=None) -> None:
    try:
        process = await asyncio.create_subprocess_exec(
            *args, cwd=str(cwd), stdout=stdout, stderr=asyncio.subprocess.PIPE,
        )
    except OSError as e:
        raise GenerationError(f"could not start {args[0]}: {e}") from e
    _, stderr = await process.communicate()
    if process.returncode != 0:
        message = stderr.decode("utf-8", errors="replace").strip()[-500:]
        raise GenerationError(f"{args[0]} exited with {process.returncode}: {message}")


class ScriptGenerator:
    """
    Executes a linkset script from the descriptor's directory. The script
    prints its N-Triples on stdout.
    """

    async def generate(self, link_set: LinkSet, target: Path) -> None:
        script = link_set.resolve(link_set.script)
        if not script.is_file():
            raise GenerationError(f"script {script} does not exist")
        logger.info(f"Running script {script}")
        with open(target, "wb") as out:
            await _run([str(script)], cwd=link_set.base_dir, stdout=out)


class LinkConfigurationGenerator:
    """
    Hands a link configuration file to an external link discovery tool. The
    command is a template with {config} and {output} placeholders, e.g.
    "java -DconfigFile={config} -DoutputFile={output} -jar silk.jar".
    """

    def __init__(self, command: Optional[str] = None):
        self.command = command

    async def generate(self, link_set: LinkSet, target: Path) -> None:
        if not self.command:
            raise GenerationError("no command configured for link-configuration linksets")
        config = link_set.resolve(link_set.config)
        if not config.is_file():
            raise GenerationError(f"link configuration {config} does not exist")
        args = [
            part.format(config=str(config), output=str(target))
            for part in shlex.split(self.command)
        ]
        if shutil.which(args[0]) is None:
            raise GenerationError(f"{args[0]} is not installed")
        await _run(args, cwd=link_set.base_dir)
        if not target.is_file():
            raise GenerationError(f"{args[0]} did not write {target}")


def default_generators(
    link_config_command: Optional[str] = None,
    timeout: int = DEFAULT_SPARQL_TIMEOUT,
) -> Dict[LinkSetKind, Generator]:
    return {
        LinkSetKind.SPARQL_QUERY: SparqlConstructGenerator(timeout=timeout),
        LinkSetKind.SCRIPT: ScriptGenerator(),
        LinkSetKind.STATIC_NTRIPLES: StaticNTriplesGenerator(timeout=timeout),
        LinkSetKind.LINK_CONFIGURATION: LinkConfigurationGenerator(command=link_config_command),
    }

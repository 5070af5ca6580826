import asyncio
import base64
import logging
import shlex
import uuid
from contextlib import asynccontextmanager, suppress
from pathlib import Path
from typing import AsyncIterator, List, Union

from app.ai_feature.service import DiagramGenerationError

logger = logging.getLogger(__name__)

DEFAULT_COMMAND = "npx -p @mermaid-js/mermaid-cli mmdc"


class MermaidRenderer:
    """Render Mermaid markup to PNG with the mermaid-cli (`mmdc`) binary."""

    def __init__(
        self,
        output_dir: Union[str, Path],
        command: Union[str, List[str]] = DEFAULT_COMMAND,
    ):
        self.output_dir = Path(output_dir)
        self.command = shlex.split(command) if isinstance(command, str) else list(command)

    def ensure_output_dir(self) -> None:
        self.output_dir.mkdir(parents=True, exist_ok=True)

    @asynccontextmanager
    async def rendered_image(
        self, markup: str, keep: bool = False
    ) -> AsyncIterator[Path]:
        """
        Yield the path of a freshly rendered PNG.

        The .mmd scratch input is removed on every exit path. The PNG is removed
        too unless `keep` is set.

        Raises:
            DiagramGenerationError: if the renderer exits non-zero or writes no image.
        """
        self.ensure_output_dir()
        name = f"diagram-{uuid.uuid4().hex}"
        input_path = self.output_dir / f"{name}.mmd"
        output_path = self.output_dir / f"{name}.png"
        succeeded = False

        try:
            await asyncio.to_thread(input_path.write_text, markup, encoding="utf-8")
            await self._run(input_path, output_path)
            if not output_path.exists():
                raise DiagramGenerationError("Renderer produced no image")
            yield output_path
            succeeded = True
        finally:
            input_path.unlink(missing_ok=True)
            if not (keep and succeeded):
                output_path.unlink(missing_ok=True)

    async def _run(self, input_path: Path, output_path: Path) -> None:
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command,
                "-i",
                str(input_path),
                "-o",
                str(output_path),
                "--quiet",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as error:
            logger.error(f"Could not start mermaid-cli: {error}")
            raise DiagramGenerationError(str(error)) from error

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            with suppress(ProcessLookupError):
                process.kill()
            await process.wait()
            raise

        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip() or "Error executing mermaid-cli"
            logger.error(f"Error executing mermaid-cli: {message}")
            raise DiagramGenerationError(message)

    async def render_base64(self, markup: str) -> str:
        async with self.rendered_image(markup) as image_path:
            image_bytes = await asyncio.to_thread(image_path.read_bytes)
        return base64.b64encode(image_bytes).decode("ascii")

    async def render_file(self, markup: str) -> str:
        """Render and keep the PNG in the served directory; return its file name."""
        async with self.rendered_image(markup, keep=True) as image_path:
            return image_path.name

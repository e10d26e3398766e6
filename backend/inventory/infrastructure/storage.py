import asyncio
import logging
from pathlib import Path

from inventory.domain.errors import NotFoundError, PersistenceError

logger = logging.getLogger(__name__)


class LocalBlobStorage:
    """Keeps uploaded bytes under a root directory; paths are relative to it."""

    def __init__(self, root: str, public_base_url: str) -> None:
        self._root = Path(root)
        self._public_base_url = public_base_url.rstrip("/")

    def _resolve(self, path: str) -> Path:
        target = (self._root / path).resolve()
        if self._root.resolve() not in target.parents:
            raise PersistenceError(f"Caminho de arquivo inválido: {path}")
        return target

    def resolve_url(self, path: str) -> str:
        return f"{self._public_base_url}/{path}"

    async def store(self, path: str, content: bytes, content_type: str) -> str:
        target = self._resolve(path)

        def write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(content)

        try:
            await asyncio.to_thread(write)
        except OSError as exc:
            logger.error(f"Failed to store {path}: {exc}")
            raise PersistenceError("Falha ao salvar o arquivo")
        logger.info(f"Stored {path} ({len(content)} bytes, {content_type})")
        return self.resolve_url(path)

    async def read(self, path: str) -> bytes:
        target = self._resolve(path)
        try:
            return await asyncio.to_thread(target.read_bytes)
        except FileNotFoundError:
            raise NotFoundError("Arquivo não encontrado")
        except OSError as exc:
            logger.error(f"Failed to read {path}: {exc}")
            raise PersistenceError("Falha ao ler o arquivo")

    async def delete(self, path: str) -> None:
        target = self._resolve(path)
        try:
            await asyncio.to_thread(target.unlink, True)
        except OSError as exc:
            logger.error(f"Failed to delete {path}: {exc}")
            raise PersistenceError("Falha ao remover o arquivo")

"""
Виртуальная файловая система движка.

Папка на диске, которую движок видит как "/": туда пишутся traineddata,
конфиг-файл и готовый PDF. Пути вне корня запрещены.
"""

import logging
import shutil
from pathlib import Path, PurePosixPath
from typing import Optional, Union

logger = logging.getLogger(__name__)

# Имена методов протокола FS -> методы VirtualFS
FS_METHODS = {
    "mkdir": "mkdir",
    "writeFile": "write_file",
    "readFile": "read_file",
    "readdir": "readdir",
    "unlink": "unlink",
    "rmdir": "rmdir",
    "exists": "exists",
}


class VirtualFS:
    """
    Файловая система движка с корнем в папке root.

    Attributes:
        root: реальная папка, соответствующая "/"
    """

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root).resolve()
        self.root.mkdir(parents=True, exist_ok=True)

    def resolve(self, path: str) -> Path:
        """
        Переводит путь виртуальной ФС в реальный.

        "/a/b", "./a/b" и "a/b" указывают на один файл.

        Raises:
            PermissionError: если путь выходит за корень
        """
        relative = PurePosixPath(path.lstrip("/") or ".")
        real = (self.root / relative).resolve()
        if real != self.root and self.root not in real.parents:
            raise PermissionError(f"Путь вне виртуальной ФС: {path}")
        return real

    def mkdir(self, path: str) -> None:
        """Создаёт папку. Если она уже есть — FileExistsError."""
        self.resolve(path).mkdir(parents=True)

    def write_file(self, path: str, data: Union[bytes, str]) -> None:
        real = self.resolve(path)
        if isinstance(data, str):
            real.write_text(data, encoding="utf-8")
        else:
            real.write_bytes(bytes(data))

    def read_file(self, path: str, encoding: Optional[str] = None) -> Union[bytes, str]:
        real = self.resolve(path)
        if encoding:
            return real.read_text(encoding=encoding)
        return real.read_bytes()

    def readdir(self, path: str = "/") -> list[str]:
        return sorted(child.name for child in self.resolve(path).iterdir())

    def unlink(self, path: str) -> None:
        self.resolve(path).unlink()

    def rmdir(self, path: str) -> None:
        self.resolve(path).rmdir()

    def exists(self, path: str) -> bool:
        return self.resolve(path).exists()

    def call(self, method: str, args: list):
        """
        Вызывает метод по имени из протокола (writeFile, readFile, ...).

        Raises:
            AttributeError: неизвестный метод
        """
        name = FS_METHODS.get(method)
        if name is None:
            raise AttributeError(f"Неизвестный метод FS: {method}")
        return getattr(self, name)(*args)

    def clear(self) -> None:
        """Удаляет корень вместе с содержимым."""
        shutil.rmtree(self.root, ignore_errors=True)

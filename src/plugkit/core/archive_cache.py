# -*- coding: utf-8 -*-
"""
插件归档缓存

把插件归档解压到缓存目录中，缓存条目比归档新时直接复用。

缓存条目以归档文件名（去掉扩展名）命名。新鲜度只看修改时间：条目的修改时间
严格晚于归档时视为有效，否则整个条目会被删除后重新解压，绝不在旧条目上覆盖写入。

注意：此处没有对缓存目录加锁，同一缓存根目录下同名归档的并发解压需要由调用方串行化。
"""

import logging
import shutil
import zipfile
import zlib
from pathlib import Path
from typing import Union

from ..exceptions import CacheCorruptionError, ExtractionError

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class ArchiveCache:
    """插件归档解压缓存"""

    def __init__(self, cache_directory: PathLike):
        """
        Args:
            cache_directory: 缓存根目录
        """
        self.cache_directory = Path(cache_directory)

    def entry_path(self, archive_path: PathLike) -> Path:
        """获取归档对应的缓存条目路径"""
        return self.cache_directory / Path(archive_path).stem

    def is_fresh(self, entry: Path, archive_path: PathLike) -> bool:
        """缓存条目的修改时间是否严格晚于归档"""
        return entry.stat().st_mtime_ns > Path(archive_path).stat().st_mtime_ns

    def resolve(self, archive_path: PathLike) -> Path:
        """
        获取归档解压后的目录，必要时重新解压

        Args:
            archive_path: 插件归档路径

        Returns:
            缓存条目目录

        Raises:
            CacheCorruptionError: 缓存条目路径存在但不是目录
            ExtractionError: 读取归档或写入解压内容失败
        """
        archive_path = Path(archive_path)
        entry = self.entry_path(archive_path)

        if entry.exists() or entry.is_symlink():
            if not entry.is_dir() or entry.is_symlink():
                raise CacheCorruptionError(f"插件缓存路径不是目录: {entry}")
            try:
                fresh = self.is_fresh(entry, archive_path)
            except OSError as e:
                raise ExtractionError(f"无法读取插件归档 {archive_path}: {e}") from e
            if fresh:
                logger.info(f"使用插件缓存: {entry}")
                return entry

            logger.info(f"插件缓存已过期，重新解压: {entry}")
            try:
                shutil.rmtree(entry)
            except OSError as e:
                raise ExtractionError(f"无法删除过期的插件缓存 {entry}: {e}") from e

        try:
            entry.mkdir(parents=True)
            self._extract(archive_path, entry)
        except ExtractionError:
            shutil.rmtree(entry, ignore_errors=True)
            raise
        except (OSError, zipfile.BadZipFile, RuntimeError, zlib.error, EOFError) as e:
            # 半成品条目的修改时间比归档新，必须删除以免被当成有效缓存
            shutil.rmtree(entry, ignore_errors=True)
            raise ExtractionError(f"解压插件归档失败 {archive_path}: {e}") from e
        except BaseException:
            shutil.rmtree(entry, ignore_errors=True)
            raise

        logger.info(f"插件归档已解压: {archive_path} -> {entry}")
        return entry

    def _extract(self, archive_path: Path, entry: Path) -> None:
        root = entry.resolve()
        with zipfile.ZipFile(archive_path) as archive:
            for member in archive.infolist():
                output_path = (root / member.filename).resolve()
                if output_path != root and root not in output_path.parents:
                    raise ExtractionError(f"归档条目越出解压目录: {member.filename}")

                if member.is_dir():
                    output_path.mkdir(parents=True, exist_ok=True)
                    continue

                output_path.parent.mkdir(parents=True, exist_ok=True)
                with archive.open(member) as source, open(output_path, "wb") as target:
                    shutil.copyfileobj(source, target)
                logger.debug(f"解压归档条目: {member.filename}")


def resolve(archive_path: PathLike, cache_root: PathLike) -> Path:
    """获取归档在指定缓存根目录下的解压目录"""
    return ArchiveCache(cache_root).resolve(archive_path)

# -*- coding: utf-8 -*-
"""
插件加载器

把类扫描、清单读取、依赖检查与注册串成完整的插件加载流程。
插件按顺序逐个处理，不做并发解压。
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Type, Union

from ..exceptions import PluginError
from ..plugins.dependency.checker import DependencyChecker
from ..plugins.dependency.manifest import ManifestValidator, PluginMetadata
from ..plugins.dependency.registry import PluginRegistry, PluginsAware
from .classes_scanner import ClassesScanner, MatchingClasses
from .config import LoaderConfig


@dataclass(frozen=True)
class LoadedPlugin:
    """已加载的插件"""

    metadata: PluginMetadata
    archive: Path
    directory: Path
    implementations: MatchingClasses

    @property
    def name(self) -> str:
        return self.metadata.name


class _StagedRegistry:
    """本轮待注册的插件优先，其次是已注册的插件"""

    def __init__(self, registry: PluginsAware, staged: Dict[str, PluginMetadata]):
        self._registry = registry
        self._staged = staged

    def get_plugin(self, name: str) -> Optional[PluginMetadata]:
        metadata = self._staged.get(name)
        if metadata is not None:
            return metadata
        return self._registry.get_plugin(name)


class PluginLoader:
    """
    插件加载器

    负责从插件目录发现插件归档，扫描实现类，读取清单，检查依赖并注册插件。
    一批插件中任何一个失败都会中止整批加载，且不注册这批中的任何插件。
    """

    def __init__(
        self,
        config: Optional[LoaderConfig] = None,
        registry: Optional[PluginRegistry] = None,
        scanner: Optional[ClassesScanner] = None,
        dependency_checker: Optional[DependencyChecker] = None,
    ):
        """
        初始化插件加载器

        Args:
            config: 加载器配置
            registry: 插件注册表，默认新建空注册表
            scanner: 类扫描器，默认按配置创建
            dependency_checker: 依赖检查器
        """
        self.config = config or LoaderConfig()
        self.registry = registry if registry is not None else PluginRegistry()
        self.scanner = scanner or ClassesScanner(config=self.config)
        self.dependency_checker = dependency_checker or DependencyChecker()
        self._logger = logging.getLogger(__name__)

    def discover(self, directory: Union[str, Path, None] = None) -> List[Path]:
        """
        列出插件目录中的插件归档

        Raises:
            PluginError: 插件目录不存在或不是目录
        """
        directory = Path(directory) if directory is not None else self.config.plugin_directory
        if not directory.is_dir():
            raise PluginError(f"插件目录不存在: {directory}")

        suffix = self.config.archive_suffix
        archives = sorted(p for p in directory.iterdir() if p.is_file() and p.name.endswith(suffix))
        self._logger.info(f"在 {directory} 中找到 {len(archives)} 个插件归档")
        return archives

    def load_plugin(self, archive: Union[str, Path], extension_points: Sequence[Type] = ()) -> LoadedPlugin:
        """
        加载单个插件归档

        Raises:
            PluginError: 扫描、清单读取失败
            DependencyError: 依赖检查失败
        """
        return self.load_plugins([Path(archive)], extension_points)[0]

    def load_plugins_from_directory(
        self, directory: Union[str, Path, None] = None, extension_points: Sequence[Type] = ()
    ) -> List[LoadedPlugin]:
        """从插件目录加载所有插件归档"""
        return self.load_plugins(self.discover(directory), extension_points)

    def load_plugins(self, archives: Sequence[Path], extension_points: Sequence[Type] = ()) -> List[LoadedPlugin]:
        """
        加载一批插件归档

        同一批插件之间可以互相依赖，与归档顺序无关。

        Returns:
            按归档顺序排列的已加载插件

        Raises:
            PluginError: 扫描、清单读取失败或批内插件重名
            DependencyError: 依赖检查失败
        """
        staged: Dict[str, PluginMetadata] = {}
        candidates: List[LoadedPlugin] = []

        for archive in archives:
            archive = Path(archive)
            implementations = self.scanner.scan(archive, extension_points)
            directory = self.scanner.cache.entry_path(archive)
            metadata = self.read_metadata(directory)
            if metadata.name in staged:
                raise PluginError(f"插件名称重复: {metadata.name} ({archive})", plugin=metadata)
            staged[metadata.name] = metadata
            candidates.append(LoadedPlugin(metadata, archive, directory, implementations))

        view = _StagedRegistry(self.registry, staged)
        for candidate in candidates:
            self.dependency_checker.check(view, candidate.metadata)

        for candidate in candidates:
            self.registry.register(candidate.metadata, candidate.archive)
            self._logger.info(f"插件已加载: {candidate.name} v{candidate.metadata.version}")
        return candidates

    def read_metadata(self, unpacked_directory: Path) -> PluginMetadata:
        """
        读取解压目录中的插件清单

        Raises:
            ManifestError: 清单不存在或无效
        """
        manifest = ManifestValidator.load_from_file(unpacked_directory / self.config.manifest_name)
        return manifest.to_metadata()

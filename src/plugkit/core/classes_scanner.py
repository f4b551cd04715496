# -*- coding: utf-8 -*-
"""
插件类扫描器

解压（或复用缓存的）插件归档，在隔离的加载器中加载主代码归档里的全部模块，
并找出满足各扩展点契约的类。
"""

import inspect
import logging
import zipfile
from pathlib import Path
from types import MappingProxyType, ModuleType
from typing import Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Type, Union

from ..exceptions import PluginError
from ..plugins.base import Plugin, satisfies
from .archive_cache import ArchiveCache
from .config import LoaderConfig
from .isolated_loader import IsolatedModuleLoader

ARCHIVE_SEPARATOR = "/"
MODULE_SEPARATOR = "."
PACKAGE_INIT = "__init__"

MatchingClasses = Mapping[Type, Tuple[Type, ...]]


class ClassesScanner:
    """
    插件类扫描器

    任何阶段的失败（缓存损坏、解压失败、模块加载失败）都会被包装成
    :class:`PluginError`，原始异常保存在 ``__cause__`` 中。任一模块加载失败都会
    中止整个扫描，不返回部分结果。

    最近一次成功扫描使用的隔离加载器保存在 ``last_loader`` 中。扫描器不会自动
    关闭它：返回的实现类在运行时仍可能通过它导入插件模块。再次扫描只会替换这个
    引用，不再使用某个插件的实现类后，由调用方关闭对应的加载器，或调用
    :meth:`close` 关闭最近一次的加载器。
    """

    def __init__(self, cache_directory: Union[str, Path, None] = None, config: Optional[LoaderConfig] = None):
        """
        Args:
            cache_directory: 缓存根目录，默认取配置中的 cache_directory
            config: 加载器配置
        """
        self.config = config or LoaderConfig()
        self.cache = ArchiveCache(cache_directory if cache_directory is not None else self.config.cache_directory)
        self.last_loader: Optional[IsolatedModuleLoader] = None
        self._logger = logging.getLogger(__name__)

    def scan(self, plugin_file: Union[str, Path], extension_points: Sequence[Type]) -> MatchingClasses:
        """
        扫描插件归档

        Args:
            plugin_file: 插件归档路径
            extension_points: 扩展点契约，Plugin 契约总会被加入

        Returns:
            扩展点 -> 实现类元组的只读映射，没有实现的扩展点不会出现在映射中

        Raises:
            PluginError: 扫描失败
        """
        plugin_file = Path(plugin_file)
        contracts = self._with_plugin_contract(extension_points)
        self.last_loader = None
        loader: Optional[IsolatedModuleLoader] = None
        try:
            unpacked_directory = self.cache.resolve(plugin_file)
            loader = self._create_loader(unpacked_directory)
            matching = self._get_matching_classes(contracts, self.get_plugin_archive(unpacked_directory), loader)
        except Exception as e:
            if loader is not None:
                loader.close()
            self._logger.error(f"扫描插件失败 {plugin_file}: {e}")
            raise PluginError(f"扫描插件失败 {plugin_file}: {e}") from e

        self.last_loader = loader
        self._logger.info(
            f"插件 {plugin_file.name} 扫描完成: "
            + ", ".join(f"{c.__name__}={len(impls)}" for c, impls in matching.items())
        )
        return MappingProxyType({contract: tuple(impls) for contract, impls in matching.items()})

    def close(self) -> None:
        """关闭并释放最近一次扫描的隔离加载器"""
        if self.last_loader is not None:
            self.last_loader.close()
            self.last_loader = None

    def get_plugin_archive(self, unpacked_directory: Path) -> Path:
        """解压目录中的主代码归档"""
        return unpacked_directory / self.config.main_archive_name

    def get_search_path(self, unpacked_directory: Path) -> List[Path]:
        """隔离加载器的搜索路径：lib 目录下的 zip 库 + 主代码归档"""
        search_path = []
        lib_directory = unpacked_directory / self.config.lib_directory
        if lib_directory.is_dir():
            for library in sorted(p for p in lib_directory.iterdir() if p.is_file()):
                if not zipfile.is_zipfile(library):
                    self._logger.warning(f"跳过非 zip 库文件: {library}")
                    continue
                search_path.append(library)
        search_path.append(self.get_plugin_archive(unpacked_directory))
        return search_path

    def iter_module_names(self, plugin_archive: Path) -> Iterator[str]:
        """按归档顺序列出主代码归档中的模块名称"""
        suffix = self.config.module_suffix
        with zipfile.ZipFile(plugin_archive) as archive:
            names = [info.filename for info in archive.infolist() if not info.is_dir()]
        for entry_name in names:
            if entry_name.endswith(suffix):
                module_name = to_module_name(entry_name, suffix)
                if module_name:
                    yield module_name

    def _create_loader(self, unpacked_directory: Path) -> IsolatedModuleLoader:
        search_path = self.get_search_path(unpacked_directory)
        self._logger.debug(f"隔离加载路径: {[str(p) for p in search_path]}")
        return IsolatedModuleLoader(search_path)

    def _get_matching_classes(
        self, contracts: Sequence[Type], plugin_archive: Path, loader: IsolatedModuleLoader
    ) -> Dict[Type, List[Type]]:
        matching: Dict[Type, List[Type]] = {}
        for module_name in self.iter_module_names(plugin_archive):
            module = loader.load(module_name)
            for candidate in _defined_classes(module):
                for contract in contracts:
                    if satisfies(candidate, contract):
                        implementations = matching.setdefault(contract, [])
                        if candidate not in implementations:
                            implementations.append(candidate)
        return matching

    @staticmethod
    def _with_plugin_contract(extension_points: Sequence[Type]) -> List[Type]:
        contracts: List[Type] = []
        for contract in list(extension_points) + [Plugin]:
            if contract not in contracts:
                contracts.append(contract)
        return contracts


def to_module_name(entry_name: str, suffix: str = ".py") -> str:
    """
    把归档内的文件路径转换为模块名称

    ``pkg/sub/mod.py`` -> ``pkg.sub.mod``，``pkg/__init__.py`` -> ``pkg``
    """
    module_name = entry_name[: -len(suffix)] if entry_name.endswith(suffix) else entry_name
    module_name = module_name.replace(ARCHIVE_SEPARATOR, MODULE_SEPARATOR)
    if module_name.startswith(MODULE_SEPARATOR) and len(module_name) > 1:
        module_name = module_name[1:]
    if module_name == PACKAGE_INIT:
        return ""
    if module_name.endswith(MODULE_SEPARATOR + PACKAGE_INIT):
        module_name = module_name[: -len(MODULE_SEPARATOR + PACKAGE_INIT)]
    return module_name


def _defined_classes(module: ModuleType) -> Iterator[Type]:
    """按定义顺序列出模块自身定义的类"""
    seen = set()
    for value in list(vars(module).values()):
        if inspect.isclass(value) and value.__module__ == module.__name__ and id(value) not in seen:
            seen.add(id(value))
            yield value

# -*- coding: utf-8 -*-
"""
隔离模块加载器

从一组 zip 代码归档中加载插件模块，模块保存在加载器私有的模块表中，
不会进入 ``sys.modules``。插件代码中的 import 语句先在加载器的搜索路径中
解析，找不到时再交给宿主的正常导入系统，因此插件自带的库版本不会泄漏到宿主，
宿主已加载的同名模块也不会遮蔽插件自带的库。

实现方式：每个插件模块拥有一份私有的 ``__builtins__``，其中的 ``__import__``
指向加载器自身。
"""

import builtins
import importlib.util
import logging
import zipimport
from pathlib import Path
from types import MappingProxyType, ModuleType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Set, Union

from ..exceptions import PluginLoadError

logger = logging.getLogger(__name__)


class IsolatedModuleLoader:
    """
    隔离模块加载器

    每个模块体在同一个加载器中只执行一次。加载器不在多次扫描之间复用，
    使用完毕后调用 :meth:`close` 释放。
    """

    def __init__(self, search_path: Sequence[Union[str, Path]]):
        """
        Args:
            search_path: 按优先级排列的 zip 代码归档

        Raises:
            PluginLoadError: 任一路径不是可导入的 zip 归档
        """
        self.search_path = tuple(Path(p) for p in search_path)
        self._importers: Dict[str, zipimport.zipimporter] = {}
        self._root_importers = [self._importer_for(str(p)) for p in self.search_path]
        self._modules: Dict[str, ModuleType] = {}
        self._host_names: Set[str] = set()
        self.load_order: List[str] = []

        self._builtins = dict(vars(builtins))
        self._builtins["__import__"] = self._import

    @property
    def modules(self) -> Mapping[str, ModuleType]:
        """已加载的插件模块（只读）"""
        return MappingProxyType(self._modules)

    def load(self, name: str) -> ModuleType:
        """
        加载模块（必要时先加载其父包）

        Args:
            name: 模块的完整名称

        Returns:
            加载后的模块

        Raises:
            PluginLoadError: 模块不存在或模块体执行失败
        """
        module = self._modules.get(name)
        if module is not None:
            return module

        parent_name, _, child_name = name.rpartition(".")
        parent = self.load(parent_name) if parent_name else None
        # 父包初始化时可能已经导入了该模块
        if name in self._modules:
            return self._modules[name]

        spec = self._find_spec(name, parent)
        if spec is None:
            raise PluginLoadError(f"插件代码中找不到模块: {name}")

        module = importlib.util.module_from_spec(spec)
        module.__dict__["__builtins__"] = self._builtins
        self._modules[name] = module
        try:
            if spec.loader is not None:
                spec.loader.exec_module(module)
        except PluginLoadError:
            del self._modules[name]
            raise
        except Exception as e:
            del self._modules[name]
            raise PluginLoadError(f"加载插件模块失败 {name}: {e}") from e

        if parent is not None:
            setattr(parent, child_name, module)
        self.load_order.append(name)
        logger.debug(f"已加载插件模块: {name}")
        return module

    def provides(self, name: str) -> bool:
        """顶层模块是否由插件代码提供"""
        return name in self._modules or self._find_spec(name, None) is not None

    def close(self) -> None:
        """释放加载的模块与归档句柄"""
        self._modules.clear()
        self._importers.clear()
        self._root_importers = []
        self._host_names.clear()

    def __enter__(self) -> "IsolatedModuleLoader":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def _importer_for(self, path_entry: str) -> zipimport.zipimporter:
        importer = self._importers.get(path_entry)
        if importer is None:
            try:
                importer = zipimport.zipimporter(path_entry)
            except zipimport.ZipImportError as e:
                raise PluginLoadError(f"无法打开代码归档 {path_entry}: {e}") from e
            # 缓存条目重建后同一路径上的归档内容可能已变化
            importer.invalidate_caches()
            self._importers[path_entry] = importer
        return importer

    def _find_spec(self, name: str, parent: Optional[ModuleType]):
        if parent is None:
            importers = self._root_importers
        else:
            search_locations = getattr(parent, "__path__", None)
            if search_locations is None:
                return None
            importers = [self._importer_for(entry) for entry in search_locations]

        for importer in importers:
            spec = importer.find_spec(name)
            if spec is not None:
                return spec
        return None

    def _import(self, name: str, globals: Optional[dict] = None, locals: Optional[dict] = None,
                fromlist: Sequence[str] = (), level: int = 0) -> ModuleType:
        """插件模块使用的 ``__import__``"""
        if level > 0:
            absolute_name = importlib.util.resolve_name("." * level + name, _calc_package(globals or {}))
        else:
            absolute_name = name
            top_name = name.partition(".")[0]
            if top_name in self._host_names:
                return builtins.__import__(name, globals, locals, fromlist, level)
            if not self.provides(top_name):
                self._host_names.add(top_name)
                return builtins.__import__(name, globals, locals, fromlist, level)

        module = self.load(absolute_name)

        if not fromlist:
            if level == 0:
                return self._modules[name.partition(".")[0]]
            if not name:
                return module
            cut_off = len(name) - len(name.partition(".")[0])
            return self._modules[module.__name__[: len(module.__name__) - cut_off]]

        if hasattr(module, "__path__"):
            self._handle_fromlist(module, fromlist)
        return module

    def _handle_fromlist(self, module: ModuleType, fromlist: Sequence[str]) -> None:
        for item in fromlist:
            if item == "*":
                exported = getattr(module, "__all__", None)
                if exported:
                    self._handle_fromlist(module, exported)
                continue
            if hasattr(module, item):
                continue
            submodule_name = f"{module.__name__}.{item}"
            # 不存在的子模块交给 import 语句报告 "cannot import name"
            if self._find_spec(submodule_name, module) is not None:
                self.load(submodule_name)


def _calc_package(globals: dict) -> str:
    package = globals.get("__package__")
    if package is None:
        spec = globals.get("__spec__")
        if spec is not None:
            return spec.parent
        package = globals.get("__name__", "")
        if "__path__" not in globals:
            package = package.rpartition(".")[0]
    return package

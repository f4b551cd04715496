# -*- coding: utf-8 -*-
"""
plugkit 核心组件：归档缓存、隔离加载、类扫描与插件加载
"""

from .archive_cache import ArchiveCache
from .classes_scanner import ClassesScanner
from .config import LoaderConfig
from .isolated_loader import IsolatedModuleLoader
from .plugin_loader import LoadedPlugin, PluginLoader

__all__ = [
    "ArchiveCache",
    "ClassesScanner",
    "LoaderConfig",
    "IsolatedModuleLoader",
    "LoadedPlugin",
    "PluginLoader",
]

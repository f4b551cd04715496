# -*- coding: utf-8 -*-
"""
plugkit: 插件归档的发现、缓存与依赖校验
"""

__author__ = "plugkit"
__version__ = "1.0.0"

# 核心组件
from .core.archive_cache import ArchiveCache
from .core.classes_scanner import ClassesScanner
from .core.config import LoaderConfig
from .core.isolated_loader import IsolatedModuleLoader
from .core.plugin_loader import LoadedPlugin, PluginLoader

# 异常
from .exceptions import (
    ArchiveCacheError,
    CacheCorruptionError,
    ConfigurationError,
    DependencyError,
    ExtractionError,
    ManifestError,
    PlugkitException,
    PluginError,
    PluginLoadError,
    PluginNotFoundError,
)

# 插件契约与依赖管理
from .plugins.base import ExtensionPoint, Plugin, implements, satisfies
from .plugins.dependency import (
    Dependency,
    DependencyChecker,
    DependencyProblem,
    ManifestValidator,
    PluginManifest,
    PluginMetadata,
    PluginRegistry,
    PluginsAware,
    VersionComparator,
    VersionRange,
    VersionRelation,
)

__all__ = [
    # 核心组件
    "ArchiveCache",
    "ClassesScanner",
    "IsolatedModuleLoader",
    "LoaderConfig",
    "LoadedPlugin",
    "PluginLoader",
    # 插件契约
    "Plugin",
    "ExtensionPoint",
    "implements",
    "satisfies",
    # 依赖管理
    "Dependency",
    "DependencyChecker",
    "DependencyProblem",
    "ManifestValidator",
    "PluginManifest",
    "PluginMetadata",
    "PluginRegistry",
    "PluginsAware",
    "VersionComparator",
    "VersionRange",
    "VersionRelation",
    # 异常
    "PlugkitException",
    "PluginError",
    "PluginNotFoundError",
    "PluginLoadError",
    "ManifestError",
    "DependencyError",
    "ArchiveCacheError",
    "CacheCorruptionError",
    "ExtractionError",
    "ConfigurationError",
]

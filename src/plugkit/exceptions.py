# -*- coding: utf-8 -*-
"""
plugkit 核心异常
"""

from typing import Any, Optional


class PlugkitException(Exception):
    """所有 plugkit 自定义异常的基类。"""

    pass


# region 插件异常


class PluginError(PlugkitException):
    """
    与插件相关的错误的基类。

    扫描器把缓存、解压、加载阶段的所有失败都包装成此异常，
    原始异常通过 ``__cause__`` 保留。
    """

    def __init__(self, message: str = "", plugin: Optional[Any] = None):
        super().__init__(message)
        self.plugin = plugin


class PluginNotFoundError(PluginError, KeyError):
    """当注册表中找不到指定的插件时引发。"""

    def __str__(self) -> str:
        # KeyError 默认会给消息加引号
        return Exception.__str__(self)


class PluginLoadError(PluginError, ImportError):
    """当插件模块无法在隔离环境中加载或初始化时引发。"""

    pass


class ManifestError(PluginError, ValueError):
    """当插件清单无效或无法读取时引发。"""

    pass


class DependencyError(PluginError):
    """
    插件依赖检查失败

    必需依赖缺失与冲突依赖存在两类问题会在全部检查完成后一次性报告。
    """

    def __init__(self, message: str, plugin: Optional[Any] = None, problem: Optional[Any] = None):
        super().__init__(message, plugin=plugin)
        self.problem = problem

    @property
    def missing_required(self) -> tuple:
        return tuple(self.problem.missing_required) if self.problem else ()

    @property
    def present_conflicting(self) -> tuple:
        return tuple(self.problem.present_conflicting) if self.problem else ()


# endregion

# region 缓存异常


class ArchiveCacheError(PlugkitException, OSError):
    """插件归档缓存相关 I/O 错误的基类。"""

    pass


class CacheCorruptionError(ArchiveCacheError):
    """当缓存条目路径存在但不是目录时引发。"""

    pass


class ExtractionError(ArchiveCacheError):
    """在读取归档或写入解压内容时发生错误时引发。"""

    pass


# endregion

# region 其他异常


class ConfigurationError(PlugkitException, ValueError):
    """当加载器配置无效时引发。"""

    pass


# endregion

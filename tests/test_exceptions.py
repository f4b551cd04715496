# -*- coding: utf-8 -*-
"""
plugkit 异常体系测试

确保异常既能按插件/缓存分类统一处理，也能按内置异常类型捕获。
"""

import pytest

from plugkit.exceptions import (
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
from plugkit.plugins.dependency.checker import DependencyProblem
from plugkit.plugins.dependency.manifest import Dependency


class TestExceptionHierarchy:
    """测试异常继承关系"""

    @pytest.mark.parametrize(
        "exc_class,builtin",
        [
            (PluginNotFoundError, KeyError),
            (PluginLoadError, ImportError),
            (ManifestError, ValueError),
            (ArchiveCacheError, OSError),
            (CacheCorruptionError, OSError),
            (ExtractionError, OSError),
            (ConfigurationError, ValueError),
        ],
    )
    def test_builtin_compatibility(self, exc_class, builtin):
        """测试可按内置异常类型捕获"""
        with pytest.raises(builtin):
            raise exc_class("boom")

    @pytest.mark.parametrize(
        "exc_class",
        [PluginNotFoundError, PluginLoadError, ManifestError, DependencyError],
    )
    def test_plugin_errors(self, exc_class):
        assert issubclass(exc_class, PluginError)
        assert issubclass(exc_class, PlugkitException)

    def test_cache_errors_are_not_plugin_errors(self):
        """测试缓存异常独立于插件异常，由扫描器负责包装"""
        assert not issubclass(ArchiveCacheError, PluginError)
        assert issubclass(ArchiveCacheError, PlugkitException)

    def test_plugin_error_keeps_plugin(self):
        error = PluginError("failed", plugin="demo")

        assert str(error) == "failed"
        assert error.plugin == "demo"

    def test_plugin_not_found_message_is_not_quoted(self):
        assert str(PluginNotFoundError("插件不存在: x")) == "插件不存在: x"

    def test_wrapped_cause_is_preserved(self):
        """测试包装后保留原始异常"""
        with pytest.raises(PluginError) as exc_info:
            try:
                raise ExtractionError("disk full")
            except ArchiveCacheError as e:
                raise PluginError("扫描插件失败") from e

        assert isinstance(exc_info.value.__cause__, ExtractionError)


class TestDependencyError:
    """测试依赖错误携带的结构化信息"""

    def test_problem_lists(self):
        problem = DependencyProblem(
            missing_required=[Dependency("a"), Dependency("b", "1.0")],
            present_conflicting=[Dependency("c")],
        )

        error = DependencyError("依赖问题", plugin="p", problem=problem)

        assert error.missing_required == (Dependency("a"), Dependency("b"))
        assert error.present_conflicting == (Dependency("c"),)
        assert error.plugin == "p"
        assert error.problem is problem

    def test_without_problem(self):
        error = DependencyError("依赖问题")

        assert error.missing_required == ()
        assert error.present_conflicting == ()

# -*- coding: utf-8 -*-
"""
全局测试配置
提供插件归档构建工具和共享fixture
"""

import abc
import io
import os
import sys
import textwrap
import time
import types
import zipfile
from pathlib import Path
from typing import Dict, Optional, Union

import pytest
import yaml

from plugkit import ExtensionPoint

FileContent = Union[str, bytes]


class Greeter(ExtensionPoint):
    """测试用扩展点"""

    @abc.abstractmethod
    def greet(self, name):
        pass


class Unimplemented(ExtensionPoint):
    """没有任何实现的扩展点"""

    pass


class Marker:
    """非 ABC 扩展点，只能通过 implements 声明"""

    pass


SAMPLE_PLUGIN_MODULES = {
    "sample/__init__.py": "",
    "sample/plugin.py": """
        from plugkit import Plugin

        _initialized = []
        _initialized.append(__name__)


        class SamplePlugin(Plugin):
            @classmethod
            def initializations(cls):
                return len(_initialized)
    """,
    "sample/greeter.py": """
        from host_contracts import Greeter
        from .helpers import shout


        class LoudGreeter(Greeter):
            def greet(self, name):
                return shout("hello " + name)


        class Unrelated:
            pass
    """,
    "sample/helpers.py": """
        CALLS = []
        CALLS.append("loaded")


        def shout(text):
            return text.upper()
    """,
}


def build_zip(path: Path, files: Dict[str, FileContent]) -> Path:
    """按给定顺序写入 zip 归档，以 '/' 结尾的名称写为目录条目"""
    path.parent.mkdir(parents=True, exist_ok=True)
    with zipfile.ZipFile(path, "w") as archive:
        for name, content in files.items():
            if name.endswith("/"):
                archive.writestr(zipfile.ZipInfo(name), b"")
            elif isinstance(content, bytes):
                archive.writestr(name, content)
            else:
                archive.writestr(name, textwrap.dedent(content).lstrip("\n"))
    return path


def zip_bytes(files: Dict[str, FileContent]) -> bytes:
    """构建内存中的 zip 归档"""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in files.items():
            if isinstance(content, bytes):
                archive.writestr(name, content)
            else:
                archive.writestr(name, textwrap.dedent(content).lstrip("\n"))
    return buffer.getvalue()


def set_mtime(path: Path, offset: float) -> None:
    """把文件修改时间设为当前时间加上偏移（秒）"""
    stamp = time.time() + offset
    os.utime(path, (stamp, stamp))


@pytest.fixture
def host_contracts(monkeypatch):
    """插件代码可导入的宿主契约模块"""
    module = types.ModuleType("host_contracts")
    module.Greeter = Greeter
    module.Unimplemented = Unimplemented
    module.Marker = Marker
    monkeypatch.setitem(sys.modules, "host_contracts", module)
    return module


@pytest.fixture
def cache_directory(tmp_path):
    """插件缓存根目录"""
    return tmp_path / ".cache"


@pytest.fixture
def plugin_factory(tmp_path):
    """
    插件归档工厂

    生成的归档修改时间被设为一小时前，保证解压后的缓存条目比归档新。
    """

    def factory(
        name: str = "some-plugin",
        modules: Optional[Dict[str, FileContent]] = None,
        libs: Optional[Dict[str, Dict[str, FileContent]]] = None,
        manifest: Optional[dict] = None,
        extra_files: Optional[Dict[str, FileContent]] = None,
        directory: Optional[Path] = None,
    ) -> Path:
        files: Dict[str, FileContent] = {}
        if manifest is not None:
            files["plugin_manifest.yaml"] = yaml.safe_dump(manifest)
        for lib_name, lib_files in (libs or {}).items():
            files[f"lib/{lib_name}"] = zip_bytes(lib_files)
        files["plugin.zip"] = zip_bytes(SAMPLE_PLUGIN_MODULES if modules is None else modules)
        files.update(extra_files or {})

        archive = build_zip((directory or tmp_path / "plugins") / f"{name}.zip", files)
        set_mtime(archive, -3600)
        return archive

    return factory


@pytest.fixture
def sample_modules():
    """示例插件的模块源码（可修改的副本）"""
    return dict(SAMPLE_PLUGIN_MODULES)


@pytest.fixture
def zip_builder():
    """zip 归档构建函数"""
    return build_zip

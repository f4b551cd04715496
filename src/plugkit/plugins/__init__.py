# -*- coding: utf-8 -*-
"""
plugkit 插件契约与依赖管理
"""

from .base import ExtensionPoint, Plugin, implements, satisfies

__all__ = ["Plugin", "ExtensionPoint", "implements", "satisfies"]

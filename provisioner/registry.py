# provisioner/registry.py
# -*- coding: utf-8 -*-
"""
Registry for pipeline stages.

Stage modules register themselves with a decorator; the orchestrator asks
the registry for a dependency-ordered list of stage names.
"""

from typing import Any, Dict, List, Optional, Set, Type

from provisioner.base_stage import BaseStage


class StageRegistry:
    """
    Registry for pipeline stages.

    This class provides a registry for stage modules to register themselves
    and methods for accessing registered stages.
    """

    _registry: Dict[str, Type["BaseStage"]] = {}

    @classmethod
    def register(cls, name: str, metadata: Optional[Dict[str, Any]] = None):
        """
        Decorator for registering stage classes.

        Args:
            name: The name of the stage.
            metadata: Optional metadata for the stage: ``dependencies``
                (stage names that must run first), ``description`` and
                ``fatal`` (whether a failure halts the run, default True).

        Returns:
            A decorator function that registers the stage class.
        """

        def decorator(stage_class: Type["BaseStage"]) -> Type["BaseStage"]:
            if name in cls._registry and cls._registry[name] is not stage_class:
                raise ValueError(
                    f"Stage with name '{name}' already registered"
                )

            if metadata:
                stage_class.metadata = {
                    "dependencies": [],
                    "description": "",
                    "fatal": True,
                    **metadata,
                }

            cls._registry[name] = stage_class
            return stage_class

        return decorator

    @classmethod
    def get_stage(cls, name: str) -> Type["BaseStage"]:
        """
        Get a stage class by name.

        Raises:
            KeyError: If no stage with the given name is registered.
        """
        if name not in cls._registry:
            raise KeyError(f"No stage registered with name '{name}'")

        return cls._registry[name]

    @classmethod
    def get_stage_dependencies(cls, name: str) -> Set[str]:
        stage_class = cls.get_stage(name)
        metadata = getattr(stage_class, "metadata", {})
        return set(metadata.get("dependencies", []))

    @classmethod
    def resolve_dependencies(cls, stages: List[str]) -> List[str]:
        """
        Resolve dependencies for a list of stages.

        Dependencies are visited in sorted order so the result is
        deterministic.

        Returns:
            Stage names in the order they should run.

        Raises:
            KeyError: If any stage or dependency is not registered.
            ValueError: If there is a circular dependency.
        """
        result = []
        visited = set()
        temp_visited = set()

        def visit(stage: str):
            if stage in temp_visited:
                raise ValueError(
                    f"Circular dependency detected involving '{stage}'"
                )

            if stage in visited:
                return

            temp_visited.add(stage)

            for dependency in sorted(cls.get_stage_dependencies(stage)):
                visit(dependency)

            temp_visited.remove(stage)
            visited.add(stage)
            result.append(stage)

        for stage in stages:
            if stage not in visited:
                visit(stage)

        return result

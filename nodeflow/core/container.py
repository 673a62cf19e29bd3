"""Dependency injection container for the application."""

from dependency_injector import containers, providers

from nodeflow.core.config import Settings
from nodeflow.services.execution_log import ExecutionRecorder
from nodeflow.services.graph import GraphModel
from nodeflow.services.node_executor import NodeExecutor
from nodeflow.services.notifications import Notifier
from nodeflow.services.script_executor import create_script_executor
from nodeflow.services.triggers import TriggerController
from nodeflow.services.workflow import WorkflowService


class Container(containers.DeclarativeContainer):
    """Application dependency injection container."""

    # Settings
    settings = providers.Singleton(
        Settings,
    )

    # Session state
    graph = providers.Singleton(
        GraphModel,
    )

    recorder = providers.Singleton(
        ExecutionRecorder,
    )

    notifier = providers.Singleton(
        Notifier,
    )

    # Execution
    script_executor = providers.Singleton(
        create_script_executor,
        engine=settings.provided.script_engine,
        node_binary=settings.provided.node_binary,
        timeout=settings.provided.script_timeout,
    )

    node_executor = providers.Singleton(
        NodeExecutor,
        script_executor=script_executor,
        http_timeout=settings.provided.http_timeout,
    )

    trigger_controller = providers.Singleton(
        TriggerController,
        immediate_threshold_ms=settings.provided.schedule_immediate_threshold_ms,
        timezone=settings.provided.scheduler_timezone,
    )

    workflow_service = providers.Singleton(
        WorkflowService,
        graph=graph,
        node_executor=node_executor,
        recorder=recorder,
        trigger_controller=trigger_controller,
        notifier=notifier,
    )


# Global container instance
container = Container()

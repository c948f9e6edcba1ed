from starlette.requests import HTTPConnection

from nodepanel.jenkins.client import JenkinsDataService
from nodepanel.panels.controller import NodeDetailsPanelManager
from nodepanel.services.node_actions import NodeActionService
from nodepanel.storage.environment_store import EnvironmentStore
from nodepanel.ws.hub import PanelSocketHub, WebHostWindow, WebRefreshHost


def get_environment_store(connection: HTTPConnection) -> EnvironmentStore:
    return connection.app.state.environment_store


def get_data_service(connection: HTTPConnection) -> JenkinsDataService:
    return connection.app.state.data_service


def get_hub(connection: HTTPConnection) -> PanelSocketHub:
    return connection.app.state.ws_hub


def get_window(connection: HTTPConnection) -> WebHostWindow:
    return connection.app.state.window


def get_panel_manager(connection: HTTPConnection) -> NodeDetailsPanelManager:
    return connection.app.state.panel_manager


def get_node_actions(connection: HTTPConnection) -> NodeActionService:
    return connection.app.state.node_actions


def get_refresh_host(connection: HTTPConnection) -> WebRefreshHost:
    return connection.app.state.refresh_host

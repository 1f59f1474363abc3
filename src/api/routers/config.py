from __future__ import annotations

from fastapi import APIRouter, Depends

from api.dependencies import get_context, gui_enabled
from models.schemas import ConfigurationSummary, ServerConfiguration
from validation_tool.context import ServiceContext

router = APIRouter(prefix="/server", tags=["config"])


@router.get("/config", summary="Active scenario configuration", response_model=ServerConfiguration)
def get_config(
    context: ServiceContext = Depends(get_context),
    gui: bool = Depends(gui_enabled),
) -> ServerConfiguration:
    return ServerConfiguration(
        configurations=[
            ConfigurationSummary(
                name=configuration.name,
                author=configuration.author,
                date=configuration.date,
                description=configuration.description,
                scenarios=configuration.scenario_names,
            )
            for configuration in context.configurations
        ],
        gui_enabled=gui,
    )


__all__ = ["router"]

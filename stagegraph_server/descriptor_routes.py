"""API routes for pipeline descriptors and the graph queries over them."""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from stagegraph.analysis.config_fields import derive_fields, initial_values
from stagegraph.analysis.environment import participates_in_attribution, resolve_owning_environment
from stagegraph.errors import FormatError
from stagegraph.logging import get_logger
from stagegraph.models.descriptor import Descriptor, PipelineMetadata
from stagegraph.models.stage_graph import StageGraph
from stagegraph.sdk.converter import (
    dump_descriptor,
    find_unresolved_dependencies,
    graph_from_descriptor,
    parse_descriptor,
    to_descriptor,
)
from stagegraph_server.descriptor_db import (
    delete_yaml as db_delete_yaml,
    get_yaml as db_get_yaml,
    list_yaml as db_list_yaml,
    put_yaml as db_put_yaml,
)

router = APIRouter()
logger = get_logger(__name__)


class SaveYamlRequest(BaseModel):
    """request body for storing descriptor text."""

    yaml: str


class SaveGraphRequest(BaseModel):
    """request body for storing an edited graph as a descriptor."""

    graph: StageGraph
    metadata: PipelineMetadata


def _load_descriptor(template_id: str) -> Descriptor:
    text = db_get_yaml(template_id)
    if text is None:
        raise HTTPException(status_code=404, detail=f"Pipeline not found: {template_id}")
    try:
        return parse_descriptor(text)
    except FormatError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@router.get("/pipeline-yaml")
def list_pipeline_yaml() -> dict[str, str]:
    """all stored descriptors keyed by id."""
    return db_list_yaml()


@router.get("/pipeline-yaml/{template_id}")
def get_pipeline_yaml(template_id: str) -> dict:
    """descriptor text for one pipeline; yaml is null when nothing is stored."""
    return {"templateId": template_id, "yaml": db_get_yaml(template_id)}


@router.post("/pipeline-yaml/{template_id}")
def save_pipeline_yaml(template_id: str, request: SaveYamlRequest) -> dict:
    """store descriptor text after checking it parses as a Pipeline."""
    try:
        descriptor = parse_descriptor(request.yaml)
    except FormatError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e

    db_put_yaml(template_id, request.yaml)
    logger.info("descriptor_saved", template_id=template_id, stages=len(descriptor.spec.stages))
    return {"templateId": template_id, "yaml": request.yaml}


@router.delete("/pipeline-yaml/{template_id}")
def delete_pipeline_yaml(template_id: str) -> dict:
    """delete a stored descriptor."""
    if db_get_yaml(template_id) is None:
        raise HTTPException(status_code=404, detail=f"Pipeline not found: {template_id}")
    db_delete_yaml(template_id)
    return {"deleted": template_id}


@router.get("/pipeline-yaml/{template_id}/graph")
def get_pipeline_graph(template_id: str) -> dict:
    """the stored descriptor converted to a stage graph."""
    descriptor = _load_descriptor(template_id)
    graph = graph_from_descriptor(descriptor)

    environments = {}
    for node in graph.nodes:
        if participates_in_attribution(node):
            owner = resolve_owning_environment(graph, node.id)
            environments[node.id] = owner.id if owner else None

    return {
        "templateId": template_id,
        "metadata": descriptor.metadata.model_dump(mode="json", by_alias=True),
        "graph": graph.model_dump(mode="json"),
        "environments": environments,
        "unresolved": [
            {"stage": item.stage, "dependency": item.dependency}
            for item in find_unresolved_dependencies(descriptor)
        ],
    }


@router.put("/pipeline-yaml/{template_id}/graph")
def save_pipeline_graph(template_id: str, request: SaveGraphRequest) -> dict:
    """serialize an edited graph and store it as the pipeline's descriptor."""
    text = dump_descriptor(to_descriptor(request.graph, request.metadata))
    db_put_yaml(template_id, text)
    return {"templateId": template_id, "yaml": text}


@router.get("/pipeline-yaml/{template_id}/config-fields")
def get_config_fields(template_id: str) -> dict:
    """operator input fields the pipeline needs, with empty initial values."""
    graph = graph_from_descriptor(_load_descriptor(template_id))
    fields = derive_fields(graph)
    return {
        "templateId": template_id,
        "fields": [field.model_dump(mode="json") for field in fields],
        "values": initial_values(fields),
    }

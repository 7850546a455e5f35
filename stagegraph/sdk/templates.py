"""Built-in template flows and the sample pipeline descriptor."""

from dataclasses import dataclass

from stagegraph.errors import UnknownTemplateError
from stagegraph.models.category import Category, classify, default_label
from stagegraph.models.descriptor import (
    DeploymentType,
    Descriptor,
    PipelineMetadata,
    PipelineSpec,
    Position,
    SpecNotifications,
    Stage,
    StageNotifications,
    StageStatus,
    Triggers,
)
from stagegraph.models.stage_graph import StageGraph
from stagegraph.sdk.converter import dump_descriptor


@dataclass(frozen=True)
class TemplateStep:
    """One step of a linear template flow."""

    id: str
    title: str
    type: str  # step kind: source, build, test, deploy, approval


# generic step kinds -> concrete stage types
STEP_TYPE_TO_STAGE_TYPE: dict[str, str] = {
    "source": "code_github",
    "build": "build_jenkins",
    "test": "test_jest",
    "deploy": "deploy_kubernetes",
    "approval": "approval_manual",
}

TEMPLATE_FLOWS: dict[str, tuple[TemplateStep, ...]] = {
    "sap-integration-suite": (
        TemplateStep("source", "Source Code", "source"),
        TemplateStep("validate", "Validate Artifacts", "test"),
        TemplateStep("build", "Package Integration Flows", "build"),
        TemplateStep("test-deploy", "Deploy to Test Environment", "deploy"),
        TemplateStep("integration-test", "Integration Testing", "test"),
        TemplateStep("approval", "Production Approval", "approval"),
        TemplateStep("prod-deploy", "Deploy to Production", "deploy"),
        TemplateStep("monitoring", "Post-Deployment Monitoring", "test"),
    ),
    "sap-s4hana-extension": (
        TemplateStep("source", "Source Code", "source"),
        TemplateStep("install", "Install Dependencies", "build"),
        TemplateStep("build", "Build CAP Application", "build"),
        TemplateStep("test", "Run Tests", "test"),
        TemplateStep("package", "Package Application", "build"),
        TemplateStep("approval", "Deployment Approval", "approval"),
        TemplateStep("deploy", "Deploy to Cloud Foundry", "deploy"),
        TemplateStep("verify", "Verify Deployment", "test"),
    ),
    "fiori-app": (
        TemplateStep("source", "Source Code", "source"),
        TemplateStep("build", "Build UI5 App", "build"),
        TemplateStep("test", "UI Tests", "test"),
        TemplateStep("package", "Create Deployment Package", "build"),
        TemplateStep("approval", "Release Approval", "approval"),
        TemplateStep("deploy", "Deploy to Launchpad", "deploy"),
    ),
    "mobile-services": (
        TemplateStep("source", "Source Code", "source"),
        TemplateStep("build", "Build Mobile App", "build"),
        TemplateStep("test", "Device Testing", "test"),
        TemplateStep("package", "Package for Distribution", "build"),
        TemplateStep("approval", "Store Approval", "approval"),
        TemplateStep("deploy", "Deploy to App Store", "deploy"),
    ),
    "bas-devspace": (
        TemplateStep("source", "Source Code", "source"),
        TemplateStep("validate", "Validate Configuration", "test"),
        TemplateStep("build", "Build DevSpace Image", "build"),
        TemplateStep("test", "Test DevSpace", "test"),
        TemplateStep("approval", "Deployment Approval", "approval"),
        TemplateStep("deploy", "Deploy to BAS", "deploy"),
    ),
    "abap-cloud": (
        TemplateStep("source", "ABAP Source", "source"),
        TemplateStep("syntax-check", "Syntax Check", "test"),
        TemplateStep("build", "Build ABAP Package", "build"),
        TemplateStep("unit-test", "ABAP Unit Tests", "test"),
        TemplateStep("approval", "Transport Approval", "approval"),
        TemplateStep("deploy", "Transport to Production", "deploy"),
    ),
}

# vertical layout for template flows
TEMPLATE_X = 250
TEMPLATE_Y_START = 100
TEMPLATE_Y_STEP = 150


def stage_type_for_step(step_type: str) -> str:
    """Concrete stage type for a template step kind.

    Step kinds that are already category-qualified stage types pass through.
    """
    if step_type in STEP_TYPE_TO_STAGE_TYPE:
        return STEP_TYPE_TO_STAGE_TYPE[step_type]
    if classify(step_type) is not Category.unknown:
        return step_type
    raise UnknownTemplateError(f"Unknown template step type: {step_type}")


def graph_from_steps(steps: tuple[TemplateStep, ...] | list[TemplateStep]) -> StageGraph:
    """Linear graph: one pending node per step, each depending on the previous."""
    graph = StageGraph()
    previous = None
    for index, step in enumerate(steps):
        stage_type = stage_type_for_step(step.type)
        node = graph.add_node(
            stage_type,
            label=step.title or default_label(stage_type),
            position=Position(x=TEMPLATE_X, y=TEMPLATE_Y_START + TEMPLATE_Y_STEP * index),
            status=StageStatus.pending,
        )
        if previous is not None:
            graph.connect(previous.id, node.id)
        previous = node
    return graph


def graph_from_template(template_id: str) -> StageGraph:
    """Build the graph for one of the built-in TEMPLATE_FLOWS."""
    steps = TEMPLATE_FLOWS.get(template_id)
    if steps is None:
        raise UnknownTemplateError(f"Unknown template flow: {template_id}")
    return graph_from_steps(steps)


def sample_descriptor() -> Descriptor:
    """A four-stage CI/CD pipeline for demonstration."""
    stages = [
        Stage(
            name="source-code",
            type="code_github",
            description="Fetch source code from repository",
            config={"repository": "https://github.com/example/repo", "branch": "main"},
            position=Position(x=300, y=100),
            notifications=StageNotifications(email=True, slack=False),
        ),
        Stage(
            name="build-application",
            type="build_jenkins",
            description="Build the application",
            depends_on=["source-code"],
            config={"buildCommand": "npm run build", "outputPath": "dist/"},
            position=Position(x=550, y=100),
            notifications=StageNotifications(email=True, slack=True),
        ),
        Stage(
            name="run-tests",
            type="test_jest",
            description="Run unit and integration tests",
            depends_on=["build-application"],
            config={"testCommand": "npm test", "coverageThreshold": 80},
            position=Position(x=800, y=100),
            notifications=StageNotifications(email=True, slack=True),
        ),
        Stage(
            name="deploy-staging",
            type="deploy_kubernetes",
            description="Deploy to staging environment",
            depends_on=["run-tests"],
            config={"environment": "staging", "namespace": "staging"},
            position=Position(x=1050, y=100),
            notifications=StageNotifications(email=True, slack=True),
        ),
    ]
    return Descriptor(
        metadata=PipelineMetadata(
            name="sample-pipeline",
            description="A sample CI/CD pipeline",
            enterprise="Sample Corp",
            entity="Sample Project",
            deployment_type=DeploymentType.integration,
        ),
        spec=PipelineSpec(
            stages=stages,
            variables={"NODE_VERSION": "18", "ENVIRONMENT": "staging"},
            notifications=SpecNotifications(email=["admin@company.com"], slack=["#devops"]),
            triggers=Triggers(push=True, pull_request=True),
        ),
    )


def sample_descriptor_yaml() -> str:
    return dump_descriptor(sample_descriptor())


def download_filename(name: str) -> str:
    """File name for downloading a descriptor: always ends in .yaml or .yml."""
    if name.endswith(".yaml") or name.endswith(".yml"):
        return name
    return f"{name}.yaml"

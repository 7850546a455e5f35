"""Stage categories derived from the category-qualified stage type.

A stage type looks like `<category>_<tool>` (`plan_jira`, `release_argo_cd`).
`classify` is the only place the prefix is inspected; everything else switches
on the resulting `Category`.
"""

from enum import Enum


class Category(str, Enum):
    """Fixed stage categories."""

    node = "node"  # environment containers: node_dev, node_qa, node_prod
    plan = "plan"
    code = "code"
    build = "build"
    test = "test"
    deploy = "deploy"
    approval = "approval"
    release = "release"
    annotation = "annotation"  # canvas notes and comments, never part of the pipeline
    unknown = "unknown"

    @property
    def is_environment(self) -> bool:
        return self is Category.node

    @property
    def carries_operator_fields(self) -> bool:
        """Whether stages of this category need operator input grouped by environment."""
        return self in _OPERATOR_FIELD_CATEGORIES


_OPERATOR_FIELD_CATEGORIES = frozenset({Category.plan, Category.approval, Category.release})

ENVIRONMENT_TYPES = frozenset({"node_dev", "node_qa", "node_prod"})
ANNOTATION_TYPES = frozenset({"note", "comment"})

# categories recognised by a `<category>_` prefix, checked in this order
_PREFIXED_CATEGORIES = (
    Category.plan,
    Category.code,
    Category.build,
    Category.test,
    Category.deploy,
    Category.approval,
    Category.release,
)


def classify(stage_type: str | None) -> Category:
    """Classify a stage type into its category."""
    if not stage_type:
        return Category.unknown
    if stage_type in ENVIRONMENT_TYPES:
        return Category.node
    if stage_type in ANNOTATION_TYPES:
        return Category.annotation
    if stage_type == Category.approval.value:
        return Category.approval
    for category in _PREFIXED_CATEGORIES:
        if stage_type.startswith(f"{category.value}_"):
            return category
    # custom approval gates such as `manual_approval`
    if Category.approval.value in stage_type:
        return Category.approval
    return Category.unknown


# default display labels for the built-in stage catalog
STAGE_TYPE_LABELS: dict[str, str] = {
    # environments
    "node_dev": "Development",
    "node_qa": "QA/Staging",
    "node_prod": "Production",
    # plan
    "plan_jira": "Jira",
    "plan_azure_devops": "Azure DevOps",
    "plan_trello": "Trello",
    "plan_asana": "Asana",
    # code
    "code_github": "GitHub",
    "code_gitlab": "GitLab",
    "code_azure_repos": "Azure Repos",
    "code_bitbucket": "Bitbucket",
    "code_sonarqube": "SonarQube",
    # build
    "build_jenkins": "Jenkins",
    "build_github_actions": "GitHub Actions",
    "build_circleci": "CircleCI",
    "build_aws_codebuild": "AWS CodeBuild",
    "build_google_cloud_build": "Google Cloud Build",
    "build_azure_devops": "Azure Pipelines",
    # test
    "test_cypress": "Cypress",
    "test_selenium": "Selenium",
    "test_jest": "Jest",
    "test_tricentis_tosca": "Tricentis Tosca",
    # release
    "release_argo_cd": "Argo CD",
    "release_servicenow": "ServiceNow",
    "release_azure_devops": "Azure DevOps Release",
    # deploy
    "deploy_kubernetes": "Kubernetes",
    "deploy_helm": "Helm",
    "deploy_terraform": "Terraform",
    "deploy_ansible": "Ansible",
    "deploy_docker": "Docker",
    "deploy_aws_codepipeline": "AWS CodePipeline",
    "deploy_cloudfoundry": "Cloud Foundry",
    # approval
    "approval_manual": "Manual Approval",
    "approval_slack": "Slack Approval",
    "approval_teams": "Teams Approval",
    # annotations
    "note": "Sticky Note",
    "comment": "Comment",
}


def default_label(stage_type: str) -> str:
    """Display label for a catalog stage type, "Unknown" otherwise."""
    return STAGE_TYPE_LABELS.get(stage_type, "Unknown")

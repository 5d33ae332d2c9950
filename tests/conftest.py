"""Shared fixtures for the cdk_cicd tests."""

import aws_cdk as cdk
import pytest
from aws_cdk import aws_codepipeline_actions as cpactions


@pytest.fixture
def stack() -> cdk.Stack:
    app = cdk.App()
    return cdk.Stack(app, "test")


@pytest.fixture
def github_source(stack):
    """Source action factory that records the actions it creates."""

    def factory(source_artifact):
        action = cpactions.GitHubSourceAction(
            action_name="pull-from-github",
            owner="duytran",
            repo="cicd-pipeline-demo",
            oauth_token=cdk.SecretValue.cfn_parameter(
                cdk.CfnParameter(stack, "oauth-token", no_echo=True)
            ),
            output=source_artifact,
        )
        factory.created.append(action)
        return action

    factory.created = []
    return factory


@pytest.fixture
def template_build_spec() -> dict:
    return {
        "version": "0.2",
        "phases": {},
        "artifacts": {
            "secondary-artifacts": {
                "cfn_template": {"files": "template.yaml"},
            }
        },
    }


@pytest.fixture
def lambda_build_spec() -> dict:
    return {
        "version": "0.2",
        "phases": {},
        "artifacts": {
            "secondary-artifacts": {
                "cfn_template": {"files": "template.yaml"},
                "lambda_package": {"files": ["*.zip"], "discard-paths": "yes"},
            }
        },
    }

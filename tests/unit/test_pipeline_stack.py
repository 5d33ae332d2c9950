import aws_cdk as cdk
import pytest
from aws_cdk.assertions import Match, Template

from cdk_cicd.build_spec import validate_build_spec
from cdk_cicd.pipeline_stack import PipelineStack

CONFIGS = {
    "stack_name": "SamApplicationStack",
    "github_owner": "duytran",
    "github_repo": "sam-application",
}


def synth(**overrides):
    app = cdk.App()
    stack = PipelineStack(app, "CdkCicdPipelineStack", dict(CONFIGS, **overrides))
    return stack, Template.from_stack(stack)


@pytest.mark.parametrize("has_lambdas", [False, True])
def test_build_spec_is_valid(has_lambdas):
    validate_build_spec(PipelineStack.build_spec(has_lambdas), has_lambdas)


def test_template_only_pipeline():
    stack, template = synth()

    assert len(stack.cicd.deploy_actions) == 1
    template.resource_count_is("AWS::CodePipeline::Pipeline", 1)
    template.has_resource_properties(
        "AWS::CodePipeline::Pipeline",
        {
            "Stages": Match.array_with(
                [
                    Match.object_like(
                        {
                            "Name": "Source",
                            "Actions": [
                                Match.object_like(
                                    {
                                        "Name": "Github",
                                        "Configuration": Match.object_like(
                                            {"Repo": "sam-application", "Branch": "main"}
                                        ),
                                    }
                                )
                            ],
                        }
                    )
                ]
            )
        },
    )


def test_lambda_pipeline():
    stack, template = synth(has_lambdas=True, github_branch="release")

    assert len(stack.cicd.deploy_actions) == 2
    template.has_resource_properties(
        "AWS::CodeBuild::Project",
        {
            "Environment": {
                "EnvironmentVariables": [Match.object_like({"Name": "S3_LAMBDA_BUCKET"})],
            }
        },
    )


def test_build_role_can_assume_the_publishing_role():
    _, template = synth()

    template.has_resource_properties(
        "AWS::IAM::Policy",
        {
            "PolicyDocument": {
                "Statement": Match.array_with(
                    [
                        Match.object_like(
                            {
                                "Sid": "extraPermissionsRequiredForPublishingAssets",
                                "Action": "sts:AssumeRole",
                                "Effect": "Allow",
                            }
                        )
                    ]
                )
            }
        },
    )


def test_lambda_build_leaves_zips_for_the_package_artifact():
    build_spec = PipelineStack.build_spec(has_lambdas=True)

    commands = build_spec["phases"]["build"]["commands"]
    zip_commands = [command for command in commands if "zip" in command]
    assert zip_commands
    assert all('"$CODEBUILD_SRC_DIR/' in command for command in zip_commands)
    package = build_spec["artifacts"]["secondary-artifacts"]["lambda_package"]
    assert package["files"] == ["*.zip"]

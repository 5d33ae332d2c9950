from aws_cdk import Aws, Stack, SecretValue, DefaultStackSynthesizer
from aws_cdk import aws_codepipeline as codepipeline
from aws_cdk import aws_codepipeline_actions as cpactions
from aws_cdk import aws_iam as iam
from constructs import Construct

from cdk_cicd.build_spec import LAMBDA_BUCKET_VARIABLE
from cdk_cicd.cdk_cicd import CdkCicd


class PipelineStack(Stack):
    def __init__(self, scope: Construct, construct_id: str, configs: dict, **kwargs):
        super().__init__(scope, construct_id, **kwargs)
        self.configs = configs
        has_lambdas = bool(configs.get("has_lambdas", False))

        # create permission to assume the file asset publishing role
        assets_publishing_permissions = iam.PolicyStatement(
            sid="extraPermissionsRequiredForPublishingAssets",
            effect=iam.Effect.ALLOW,
            actions=["sts:AssumeRole"],
            resources=[
                f"arn:aws:iam::{Aws.ACCOUNT_ID}:role/cdk-{DefaultStackSynthesizer.DEFAULT_QUALIFIER}-file-publishing-role-{Aws.ACCOUNT_ID}-{Aws.REGION}"
            ],
        )

        self.cicd = CdkCicd(
            self,
            "Cicd",
            stack_name=configs["stack_name"],
            source_action=self._github_source_action,
            create_build_spec=lambda: self.build_spec(has_lambdas),
            has_lambdas=has_lambdas,
            additional_policy_statements=[assets_publishing_permissions],
        )

    def _github_source_action(self, source_output: codepipeline.Artifact):
        # Github connection action
        return cpactions.GitHubSourceAction(
            action_name="Github",
            owner=self.configs["github_owner"],
            repo=self.configs["github_repo"],
            branch=self.configs.get("github_branch", "main"),
            output=source_output,
            oauth_token=SecretValue.secrets_manager(
                self.configs.get("github_token_secret", "githubtoken")
            ),
        )

    @staticmethod
    def build_spec(has_lambdas: bool) -> dict:
        """SAM build spec that emits the template and, optionally, the lambda zips."""
        build_commands = ["sam build"]
        secondary_artifacts = {
            "cfn_template": {"files": ["template.yaml"]},
        }
        if has_lambdas:
            build_commands += [
                # one zip per built function, left in the source dir for lambda_package
                'for dir in .aws-sam/build/*/; do (cd "$dir" && zip -qr "$CODEBUILD_SRC_DIR/$(basename "$dir").zip" .); done',
                f"sam package --s3-bucket ${LAMBDA_BUCKET_VARIABLE} --output-template-file template.yaml",
            ]
            secondary_artifacts["lambda_package"] = {
                "files": ["*.zip"],
                "discard-paths": "yes",
            }
        else:
            build_commands.append("cp .aws-sam/build/template.yaml template.yaml")

        return {
            "version": "0.2",
            "phases": {
                "install": {
                    "commands": [
                        "pip install aws-sam-cli",
                    ]
                },
                "build": {"commands": build_commands},
            },
            "artifacts": {
                "secondary-artifacts": secondary_artifacts,
            },
        }

import logging
from typing import Any, Callable, Mapping, Optional, Sequence

from aws_cdk import CfnCapabilities, RemovalPolicy
from aws_cdk import aws_codebuild as codebuild
from aws_cdk import aws_codepipeline as codepipeline
from aws_cdk import aws_codepipeline_actions as cpactions
from aws_cdk import aws_iam as iam
from aws_cdk import aws_s3 as s3
from constructs import Construct

from cdk_cicd.build_spec import (
    CFN_TEMPLATE_ARTIFACT,
    LAMBDA_BUCKET_VARIABLE,
    LAMBDA_PACKAGE_ARTIFACT,
    template_file,
    validate_build_spec,
)
from cdk_cicd.errors import MissingSourceActionError, SourceArtifactMismatchError

logger = logging.getLogger(__name__)


class CdkCicd(Construct):
    """
    Source -> Build -> Deploy pipeline for a CloudFormation template built by CodeBuild.

    The build spec must declare a ``cfn_template`` secondary artifact, plus a
    ``lambda_package`` one when ``has_lambdas`` is set. Lambda packages are
    uploaded to the artifact bucket, exposed to the build as ``S3_LAMBDA_BUCKET``.
    """

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        *,
        stack_name: str,
        source_action: Callable[[codepipeline.Artifact], codepipeline.IAction],
        create_build_spec: Callable[[], Mapping[str, Any]],
        has_lambdas: bool = False,
        additional_policy_statements: Optional[Sequence[iam.PolicyStatement]] = None,
        build_image: Optional[codebuild.IBuildImage] = None,
        compute_type: Optional[codebuild.ComputeType] = None,
        removal_policy: RemovalPolicy = RemovalPolicy.DESTROY,
    ) -> None:
        super().__init__(scope, construct_id)

        self.stack_name = stack_name
        self.has_lambdas = has_lambdas

        build_spec = create_build_spec()
        validate_build_spec(build_spec, has_lambdas)

        # Source
        self.source_artifact = codepipeline.Artifact()
        self.source_action = self._bind_source_action(source_action)

        # Artifact bucket, also the lambda package store
        self.artifact_bucket = s3.Bucket(
            self,
            f"{construct_id}-artifact-bucket",
            removal_policy=removal_policy,
        )

        # Build
        self.template_artifact = codepipeline.Artifact(CFN_TEMPLATE_ARTIFACT)
        self.lambda_package_artifact = (
            codepipeline.Artifact(LAMBDA_PACKAGE_ARTIFACT) if has_lambdas else None
        )
        self.project = self._create_project(
            construct_id, build_spec, build_image, compute_type
        )
        for statement in additional_policy_statements or []:
            self.project.add_to_role_policy(statement)

        self.build_action = cpactions.CodeBuildAction(
            action_name="codebuild",
            project=self.project,
            input=self.source_artifact,
            outputs=self._build_outputs(),
        )

        # Deploy
        self.deploy_actions = self._create_deploy_actions(build_spec)

        self.pipeline = codepipeline.Pipeline(
            self,
            f"{construct_id}-pipeline",
            artifact_bucket=self.artifact_bucket,
            cross_account_keys=False,
            stages=[
                codepipeline.StageProps(stage_name="Source", actions=[self.source_action]),
                codepipeline.StageProps(stage_name="Build", actions=[self.build_action]),
                codepipeline.StageProps(stage_name="Deploy", actions=self.deploy_actions),
            ],
        )
        logger.debug(
            "assembled pipeline %s for stack %s with %d deploy action(s)",
            self.node.path,
            stack_name,
            len(self.deploy_actions),
        )

    def _bind_source_action(self, source_action) -> codepipeline.IAction:
        action = source_action(self.source_artifact)
        if action is None:
            raise MissingSourceActionError()

        outputs = action.action_properties.outputs or []
        if len(outputs) != 1 or outputs[0] is not self.source_artifact:
            raise SourceArtifactMismatchError()
        return action

    def _create_project(self, construct_id, build_spec, build_image, compute_type):
        environment_variables = None
        if self.has_lambdas:
            environment_variables = {
                LAMBDA_BUCKET_VARIABLE: codebuild.BuildEnvironmentVariable(
                    value=self.artifact_bucket.bucket_name
                )
            }

        project = codebuild.PipelineProject(
            self,
            f"{construct_id}-codebuild",
            environment=codebuild.BuildEnvironment(
                build_image=build_image or codebuild.LinuxBuildImage.STANDARD_7_0,
                compute_type=compute_type or codebuild.ComputeType.SMALL,
                # docker builds
                privileged=True,
                environment_variables=environment_variables,
            ),
            build_spec=codebuild.BuildSpec.from_object(build_spec),
        )
        self.artifact_bucket.grant_read_write(project)
        return project

    def _build_outputs(self):
        outputs = [self.template_artifact]
        if self.lambda_package_artifact is not None:
            outputs.append(self.lambda_package_artifact)
        logger.debug("build outputs: %s", [output.artifact_name for output in outputs])
        return outputs

    def _create_deploy_actions(self, build_spec):
        actions = [
            cpactions.CloudFormationCreateUpdateStackAction(
                action_name="cfn-deploy",
                stack_name=self.stack_name,
                template_path=self.template_artifact.at_path(template_file(build_spec)),
                admin_permissions=True,
                cfn_capabilities=[CfnCapabilities.NAMED_IAM, CfnCapabilities.AUTO_EXPAND],
            )
        ]
        if self.lambda_package_artifact is not None:
            actions.append(
                cpactions.S3DeployAction(
                    action_name="lambda-deploy",
                    bucket=self.artifact_bucket,
                    input=self.lambda_package_artifact,
                    extract=True,
                )
            )
        return actions

from typing import Optional


class CdkCicdError(ValueError):
    """Configuration defect detected while assembling the pipeline."""

    code = "invalid configuration"
    message = "The pipeline configuration is invalid."

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)


class BuildSpecValidationError(CdkCicdError):
    code = "invalid build spec"
    message = "Please provide a valid BuildSpec."


class MissingSecondaryArtifactsError(BuildSpecValidationError):
    code = "missing secondary-artifacts"
    message = "Please provide a BuildSpec that has an .artifacts.secondary-artifacts value."


class MissingCfnTemplateError(BuildSpecValidationError):
    code = "missing cfn_template"
    message = (
        "Please provide a BuildSpec that has an "
        ".artifacts.secondary-artifacts.cfn_template value."
    )


class MissingCfnTemplateFilesError(BuildSpecValidationError):
    code = "missing cfn_template.files"
    message = (
        "Please provide a BuildSpec that has an "
        ".artifacts.secondary-artifacts.cfn_template.files value."
    )


class MissingLambdaPackageError(BuildSpecValidationError):
    code = "missing lambda_package (packaging enabled)"
    message = (
        "Please provide a BuildSpec that has an "
        ".artifacts.secondary-artifacts.lambda_package value when has_lambdas is true."
    )


class MissingLambdaPackageFilesError(BuildSpecValidationError):
    code = "missing lambda_package.files (packaging enabled)"
    message = (
        "Please provide a BuildSpec that has an "
        ".artifacts.secondary-artifacts.lambda_package.files value when has_lambdas is true."
    )


class SourceActionError(CdkCicdError):
    code = "invalid sourceAction"
    message = "Please provide a valid source_action."


class MissingSourceActionError(SourceActionError):
    code = "missing sourceAction result"
    message = (
        "Please provide a source_action that returns an IAction "
        "pointing at the source CDK module."
    )


class SourceArtifactMismatchError(SourceActionError):
    code = "sourceAction does not use the provided artifact"
    message = "Please provide a source_action that uses the provided source artifact."

#!/usr/bin/env python3
import logging

import aws_cdk as cdk

from cdk_cicd.pipeline_stack import PipelineStack

app = cdk.App()

logging.basicConfig(
    level=app.node.try_get_context("log_level") or "INFO",
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

PipelineStack(
    app,
    "CdkCicdPipelineStack",
    app.node.try_get_context("pipeline") or {},
)

app.synth()

# Copyright 2025 Snowflake Inc.
# SPDX-License-Identifier: Apache-2.0
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""boto3 session helpers for the AWS credential preflight.

Pulumi's AWS provider reads the same credential chain as boto3 (env vars,
~/.aws/, SSO), so a successful STS call here means `up`/`destroy` will be
able to authenticate.
"""

import boto3
import click
from botocore.exceptions import BotoCoreError, ClientError, NoCredentialsError, ProfileNotFound


def create_cloud_session(aws_profile: str | None = None, region: str = "us-west-2"):
    """Create a boto3 session for the target account.

    Returns:
        boto3 STS client
    """
    session = boto3.Session(profile_name=aws_profile, region_name=region)
    return session.client("sts")


def preflight_aws_check(aws_profile: str | None = None, region: str = "us-west-2") -> dict:
    """Verify AWS credentials are valid before provisioning.

    On failure (expired SSO, missing creds, unknown profile), raises
    ClickException with a message telling the user how to fix it.

    Returns:
        {"account": ..., "arn": ...} for the caller identity
    """
    profile = aws_profile or "default"
    try:
        sts = create_cloud_session(aws_profile, region)
        identity = sts.get_caller_identity()
    except ProfileNotFound:
        raise click.ClickException(
            f"AWS profile '{profile}' not found.\nRun: aws configure --profile {profile}"
        )
    except NoCredentialsError:
        raise click.ClickException(
            f"No AWS credentials found for profile '{profile}'.\n"
            f"Run: aws configure --profile {profile}"
        )
    except ClientError as e:
        code = e.response.get("Error", {}).get("Code", "")
        msg = f"AWS credentials not valid for profile '{profile}'.\n"
        if "ExpiredToken" in code:
            msg += f"Run: aws sso login --profile {profile}"
        else:
            msg += f"Error: {e}"
        raise click.ClickException(msg)
    except BotoCoreError as e:
        raise click.ClickException(f"AWS credential check failed: {e}")

    return {"account": identity["Account"], "arn": identity["Arn"]}

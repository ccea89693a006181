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

"""Inline Pulumi program: an S3 bucket serving a single index.html."""

import json

import pulumi
from pulumi_aws import s3

from static_site_forge.lifecycle import WEBSITE_URL_OUTPUT

INDEX_DOCUMENT = "index.html"

INDEX_CONTENT = """<html><head>
<title>Hello S3</title><meta charset="UTF-8">
</head>
<body><p>Hello, world!</p><p>Made with ❤️ with <a href="https://pulumi.com">Pulumi</a></p>
</body></html>
"""


def public_read_policy(bucket_name: str) -> str:
    """Bucket policy JSON allowing anonymous s3:GetObject on every key."""
    return json.dumps({
        "Version": "2012-10-17",
        "Statement": [
            {
                "Effect": "Allow",
                "Principal": "*",
                "Action": ["s3:GetObject"],
                "Resource": [f"arn:aws:s3:::{bucket_name}/*"],
            }
        ],
    })


def pulumi_program():
    site_bucket = s3.Bucket(
        "s3-website-bucket",
        website=s3.BucketWebsiteArgs(index_document=INDEX_DOCUMENT),
    )

    s3.BucketObject(
        "index",
        bucket=site_bucket.id,
        content=INDEX_CONTENT,
        key=INDEX_DOCUMENT,
        content_type="text/html; charset=utf-8",
    )

    # New buckets block public policies by default
    access_block = s3.BucketPublicAccessBlock(
        "public-access",
        bucket=site_bucket.id,
        block_public_acls=False,
        block_public_policy=False,
        ignore_public_acls=False,
        restrict_public_buckets=False,
    )

    s3.BucketPolicy(
        "bucketPolicy",
        bucket=site_bucket.id,
        policy=site_bucket.id.apply(public_read_policy),
        opts=pulumi.ResourceOptions(depends_on=[access_block]),
    )

    pulumi.export(WEBSITE_URL_OUTPUT, site_bucket.website_endpoint)

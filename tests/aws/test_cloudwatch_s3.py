from formwork.aws.cloudwatch import LogGroupBuilder
from formwork.aws.s3 import BucketBuilder


def test_log_group():
    log_group = LogGroupBuilder("fnLogs").log_group_name("/aws/lambda/fn").retention_in_days(14)

    built = log_group.build()

    assert built.synthesized_id.startswith("LogGroup")
    assert built.to_template() == {
        "Type": "AWS::Logs::LogGroup",
        "Properties": {"LogGroupName": "/aws/lambda/fn", "RetentionInDays": 14},
    }


def test_log_group_without_settings_has_empty_properties():
    assert LogGroupBuilder("logs").build().to_template()["Properties"] == {}


def test_bucket():
    bucket = BucketBuilder("uploads").bucket_name("my-uploads").versioning().build()

    assert bucket.synthesized_id.startswith("S3Bucket")
    assert bucket.to_template() == {
        "Type": "AWS::S3::Bucket",
        "Properties": {
            "BucketName": "my-uploads",
            "VersioningConfiguration": {"Status": "Enabled"},
        },
    }
    assert bucket.bucket_name().to_template() == {"Ref": bucket.synthesized_id}


def test_bucket_without_versioning():
    properties = BucketBuilder("uploads").build().to_template()["Properties"]

    assert properties == {}

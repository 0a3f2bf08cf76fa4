from typing import Literal

# Lambda instruction set architectures
type Architecture = Literal["x86_64", "arm64"]

# Lambda managed runtimes
type Runtime = Literal[
    "python3.12",
    "python3.13",
    "nodejs20.x",
    "nodejs22.x",
    "java21",
    "provided.al2023",
]

type AttributeType = Literal["S", "N", "B"]

type DeduplicationScope = Literal["queue", "messageGroup"]

type FifoThroughputLimit = Literal["perQueue", "perMessageGroupId"]

type FifoThroughputScope = Literal["Topic", "MessageGroup"]

type Effect = Literal["Allow", "Deny"]

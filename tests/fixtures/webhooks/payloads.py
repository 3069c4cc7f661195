"""
Webhook payload builders shaped after the JSON the hosting services send.
"""

import json
from typing import Any


def reference(name: str, hash: str | None, type: str = "branch") -> dict[str, Any]:
    return {"name": name, "type": type, "target": {"hash": hash}}


def change(
    old: dict[str, Any] | None = None,
    new: dict[str, Any] | None = None,
    created: bool = False,
    closed: bool = False,
) -> dict[str, Any]:
    return {"old": old, "new": new, "created": created, "closed": closed}


def cloud_repository(
    owner: str = "bob", name: str = "foo", scm: str = "git"
) -> dict[str, Any]:
    return {
        "scm": scm,
        "full_name": f"{owner}/{name}",
        "name": name,
        "owner": {"username": owner},
        "is_private": True,
        "links": {
            "self": {"href": f"https://api.bitbucket.org/2.0/repositories/{owner}/{name}"},
            "html": {"href": f"https://bitbucket.org/{owner}/{name}"},
        },
    }


def server_repository(
    project: str = "BOB",
    slug: str = "foo",
    server_url: str = "https://git.example.com",
    scm: str = "git",
) -> dict[str, Any]:
    return {
        "scmId": scm,
        "slug": slug,
        "project": {"key": project},
        "public": False,
        "links": {
            "self": [{"href": f"{server_url}/projects/{project}/repos/{slug}/browse"}]
        },
    }


def cloud_push(changes: list[dict[str, Any]], **repository: Any) -> str:
    return json.dumps(
        {"push": {"changes": changes}, "repository": cloud_repository(**repository)}
    )


def server_push(changes: list[dict[str, Any]], **repository: Any) -> str:
    return json.dumps(
        {"push": {"changes": changes}, "repository": server_repository(**repository)}
    )


def cloud_pull_request(id: int = 1, **repository: Any) -> str:
    return json.dumps(
        {"pullrequest": {"id": id}, "repository": cloud_repository(**repository)}
    )


def server_pull_request(id: int = 1, **repository: Any) -> str:
    return json.dumps(
        {
            "pullRequest": {
                "id": id,
                "toRef": {"repository": server_repository(**repository)},
            }
        }
    )

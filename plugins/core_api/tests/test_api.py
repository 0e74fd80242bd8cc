# plugins/core_api/tests/test_api.py

import asyncio
import json
import pytest
from pathlib import Path
from uuid import uuid4

from httpx import AsyncClient

# 标记此文件中所有测试均为端到端(e2e)测试
pytestmark = [pytest.mark.asyncio, pytest.mark.e2e]


async def _create(client: AsyncClient, name: str = "Production", **extra) -> dict:
    response = await client.post("/api/v1/topologies", json={"name": name, **extra})
    assert response.status_code == 201, response.text
    return response.json()


class TestTopologyAPI:
    """
    【E2E测试】
    通过 HTTP 验证拓扑的增删改查，数据目录指向每个测试独立的临时目录。
    """

    async def test_list_is_empty_initially(self, client: AsyncClient):
        response = await client.get("/api/v1/topologies")
        assert response.status_code == 200
        assert response.json() == {"topologies": []}

    async def test_create_and_get(self, client: AsyncClient, data_dir: Path):
        created = await _create(client, "Production", description="main cluster")

        assert created["name"] == "Production"
        assert created["description"] == "main cluster"
        assert created["provider"] == "linode"
        assert "createdAt" in created and "updatedAt" in created
        assert (data_dir / "topologies" / f"{created['id']}.json").is_file()

        response = await client.get(f"/api/v1/topologies/{created['id']}")
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

    @pytest.mark.parametrize("name", ["", "   ", "x" * 101])
    async def test_create_rejects_invalid_name(self, client: AsyncClient, name: str):
        response = await client.post("/api/v1/topologies", json={"name": name})
        assert response.status_code == 400

    async def test_get_unknown_returns_404(self, client: AsyncClient):
        response = await client.get(f"/api/v1/topologies/{uuid4()}")
        assert response.status_code == 404

    async def test_get_with_malformed_id_is_rejected(self, client: AsyncClient):
        response = await client.get("/api/v1/topologies/not-a-uuid")
        assert response.status_code == 422

    async def test_corrupt_document_returns_500_but_list_still_works(self, client: AsyncClient, data_dir: Path):
        good = await _create(client, "good")
        bad_id = uuid4()
        (data_dir / "topologies" / f"{bad_id}.json").write_text("{ broken", encoding="utf-8")

        response = await client.get(f"/api/v1/topologies/{bad_id}")
        assert response.status_code == 500

        listed = (await client.get("/api/v1/topologies")).json()["topologies"]
        assert [t["id"] for t in listed] == [good["id"]]

    async def test_list_returns_summaries_newest_first(self, client: AsyncClient):
        first = await _create(client, "first")
        second = await _create(client, "second")

        response = await client.get("/api/v1/topologies")
        summaries = response.json()["topologies"]
        assert [s["id"] for s in summaries] == [second["id"], first["id"]]
        assert summaries[0]["containerCount"] == 0
        assert summaries[0]["wireCount"] == 0
        assert "containers" not in summaries[0]

    async def test_update_replaces_document(self, client: AsyncClient, data_dir: Path):
        created = await _create(client)
        host_id = str(uuid4())
        body = {
            **created,
            "name": "Renamed",
            "containers": [{"id": host_id, "name": "host-1", "kind": "Host"}],
        }

        response = await client.put(f"/api/v1/topologies/{created['id']}", json=body)
        assert response.status_code == 200
        updated = response.json()
        assert updated["name"] == "Renamed"
        assert updated["createdAt"] == created["createdAt"]
        assert updated["updatedAt"] != created["updatedAt"]

        on_disk = json.loads((data_dir / "topologies" / f"{created['id']}.json").read_text(encoding="utf-8"))
        assert on_disk["containers"][0]["id"] == host_id
        assert on_disk["containers"][0]["kind"] == "Host"

    async def test_update_uses_path_id(self, client: AsyncClient):
        created = await _create(client)
        body = {**created, "id": str(uuid4()), "name": "Renamed"}

        response = await client.put(f"/api/v1/topologies/{created['id']}", json=body)
        assert response.status_code == 200
        assert response.json()["id"] == created["id"]

        listed = (await client.get("/api/v1/topologies")).json()["topologies"]
        assert len(listed) == 1

    async def test_update_unknown_returns_404(self, client: AsyncClient):
        topology_id = str(uuid4())
        response = await client.put(f"/api/v1/topologies/{topology_id}", json={"id": topology_id, "name": "x"})
        assert response.status_code == 404

    async def test_delete(self, client: AsyncClient, data_dir: Path):
        created = await _create(client)

        response = await client.delete(f"/api/v1/topologies/{created['id']}")
        assert response.status_code == 200
        assert response.json() == {"deleted": True}
        assert not (data_dir / "topologies" / f"{created['id']}.json").exists()

        response = await client.delete(f"/api/v1/topologies/{created['id']}")
        assert response.status_code == 404

    async def test_duplicate(self, client: AsyncClient):
        created = await _create(client, "Production")
        host_id = str(uuid4())
        await client.put(
            f"/api/v1/topologies/{created['id']}",
            json={**created, "containers": [{"id": host_id, "name": "host-1", "kind": "Host"}]},
        )

        response = await client.post(f"/api/v1/topologies/{created['id']}/duplicate")
        assert response.status_code == 201
        clone = response.json()
        assert clone["id"] != created["id"]
        assert clone["name"] == "Production (Copy)"
        assert clone["containers"][0]["id"] == host_id

        listed = (await client.get("/api/v1/topologies")).json()["topologies"]
        assert [t["id"] for t in listed][0] == clone["id"]
        assert len(listed) == 2

    async def test_duplicate_unknown_returns_404(self, client: AsyncClient):
        response = await client.post(f"/api/v1/topologies/{uuid4()}/duplicate")
        assert response.status_code == 404

    async def test_concurrent_creates(self, client: AsyncClient):
        responses = await asyncio.gather(*[
            client.post("/api/v1/topologies", json={"name": f"t{i}"}) for i in range(10)
        ])
        assert all(r.status_code == 201 for r in responses)
        listed = (await client.get("/api/v1/topologies")).json()["topologies"]
        assert len(listed) == 10


class TestCredentialsAPI:
    """【E2E测试】凭据端点永远不能泄露敏感变量的值。"""

    async def test_status_of_unknown_provider(self, client: AsyncClient):
        response = await client.get("/api/v1/providers/linode/credentials")
        assert response.status_code == 200
        assert response.json() == {
            "hasCredentials": False,
            "setVariables": [],
            "nonSensitiveValues": {},
        }

    async def test_save_and_status(self, client: AsyncClient, data_dir: Path):
        response = await client.post(
            "/api/v1/providers/linode/credentials",
            json={"variables": {"linode_token": "super-secret", "region": "us-east"}},
        )
        assert response.status_code == 200
        assert response.json() == {"status": "saved"}
        assert (data_dir / "credentials" / "linode.tfvars").is_file()

        response = await client.get("/api/v1/providers/linode/credentials")
        data = response.json()
        assert data["hasCredentials"] is True
        assert set(data["setVariables"]) == {"linode_token", "region"}
        assert data["nonSensitiveValues"] == {"region": "us-east"}
        assert "super-secret" not in response.text

    async def test_empty_value_deletes_variable(self, client: AsyncClient):
        await client.post("/api/v1/providers/linode/credentials", json={"variables": {"region": "us-east", "domain": "a.com"}})
        await client.post("/api/v1/providers/linode/credentials", json={"variables": {"region": ""}})

        data = (await client.get("/api/v1/providers/linode/credentials")).json()
        assert data["setVariables"] == ["domain"]

    async def test_empty_body_is_rejected(self, client: AsyncClient):
        response = await client.post("/api/v1/providers/linode/credentials", json={"variables": {}})
        assert response.status_code == 400

    @pytest.mark.parametrize("provider_key", ["bad.key", "white space", "a+b"])
    async def test_invalid_provider_key_is_rejected(self, client: AsyncClient, provider_key: str):
        response = await client.get(f"/api/v1/providers/{provider_key}/credentials")
        assert response.status_code == 400

    @pytest.mark.parametrize("name", ["region\nlinode_token", "a=b", "#comment", "1region", "has space", "region\n"])
    async def test_invalid_variable_name_is_rejected(self, client: AsyncClient, data_dir: Path, name: str):
        """变量名会原样写入 tfvars 文件，不能让它注入或吞掉其他变量。"""
        response = await client.post(
            "/api/v1/providers/linode/credentials",
            json={"variables": {"region": "us-east", name: "v"}},
        )
        assert response.status_code == 400
        assert not (data_dir / "credentials" / "linode.tfvars").exists()

        data = (await client.get("/api/v1/providers/linode/credentials")).json()
        assert data["setVariables"] == []

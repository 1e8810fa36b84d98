"""Integration tests for audio upload and streaming."""

import pytest
from httpx import AsyncClient


async def upload(client: AsyncClient, headers, content: bytes, content_type: str = "audio/mpeg", name: str = "take.mp3"):
    return await client.post("/api/upload/audio", headers=headers, files={"audio": (name, content, content_type)})


class TestAudioUpload:
    @pytest.mark.asyncio
    async def test_upload_and_stream(self, client: AsyncClient, app, auth_headers, sample_mp3):
        response = await upload(client, auth_headers, sample_mp3)

        assert response.status_code == 201
        audio = response.json()["data"]
        assert audio["originalName"] == "take.mp3"
        assert audio["filename"].endswith(".mp3")
        assert audio["size"] == len(sample_mp3)
        assert audio["url"] == f"/api/audio/{audio['id']}"

        streamed = await client.get(audio["url"])
        assert streamed.status_code == 200
        assert streamed.headers["content-type"] == "audio/mpeg"
        assert streamed.content == sample_mp3

        original = await client.get(f"/api/audio/original/{audio['id']}")
        assert original.content == sample_mp3

    @pytest.mark.asyncio
    async def test_stream_sniffs_content_type(self, client: AsyncClient, auth_headers):
        webm = b"\x1a\x45\xdf\xa3" + bytes(60)
        response = await upload(client, auth_headers, webm, content_type="audio/mpeg", name="clip.mp3")

        streamed = await client.get(response.json()["data"]["url"])
        assert streamed.headers["content-type"] == "audio/webm"

    @pytest.mark.asyncio
    async def test_rejects_non_audio(self, client: AsyncClient, auth_headers):
        response = await upload(client, auth_headers, b"%PDF-1.4", content_type="application/pdf", name="doc.pdf")

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Invalid file type. Only audio files are allowed."

    @pytest.mark.asyncio
    async def test_requires_file(self, client: AsyncClient, auth_headers):
        response = await client.post("/api/upload/audio", headers=auth_headers)

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "No audio file uploaded"

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient, sample_mp3):
        response = await upload(client, {}, sample_mp3)
        assert response.status_code == 401


class TestAudioStreaming:
    @pytest.mark.asyncio
    async def test_missing_file_on_disk(self, client: AsyncClient, test_audio):
        response = await client.get(f"/api/audio/{test_audio.id}")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_id(self, client: AsyncClient):
        response = await client.get("/api/audio/unknown-id")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_transformation_id_resolves_output(self, client: AsyncClient, app, test_user, test_audio):
        from voiceverse.database import get_session
        from voiceverse.database.repositories import AudioFileRepository, VoiceTransformationRepository

        await app.state.storage.upload(b"ID3out", "audio/transformed/out.mp3")
        async with get_session() as session:
            output = await AudioFileRepository(session).create(
                user_id=test_user.id,
                filename="out.mp3",
                original_name="out.mp3",
                path="audio/transformed/out.mp3",
                mimetype="audio/mpeg",
                size=6,
            )
            transformation = await VoiceTransformationRepository(session).create(
                user_id=test_user.id,
                original_audio_id=test_audio.id,
                transformed_audio_id=output.id,
                effect_id="happy",
            )

        response = await client.get(f"/api/audio/{transformation.id}")

        assert response.status_code == 200
        assert response.content == b"ID3out"

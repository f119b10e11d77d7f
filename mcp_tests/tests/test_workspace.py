import json

import httpx
import pytest

from clients.github.identity import IdentityVerifier
from core.errors import AuthError, NonFastForwardError, RemoteServiceError, StorageError, ValidationError
from core.models import (
    AssistantOperation,
    GitHubUser,
    LocalSource,
    MemorySource,
    ProjectFile,
    RemoteSource,
)
from core.rate_limiter import RateLimiter
from sources.local_directory import LocalDirectoryAdapter
from sync.assistant import AssistantGateway
from sync.git_sync import GitSyncEngine
from sync.project_store import ProjectStore
from sync.workspace import Workspace, generate_commit_message


def _workspace(client, tmp_path, *, token=None, assistant=None, max_file_bytes=1024 * 1024):
    return Workspace(
        store=ProjectStore(),
        engine=GitSyncEngine(client=client, max_file_bytes=max_file_bytes),
        local=LocalDirectoryAdapter(project_root=tmp_path, max_file_bytes=max_file_bytes),
        identity=IdentityVerifier(client=client),
        assistant=assistant,
        token=token,
    )


def _identity_routes():
    return {
        ("GET", "/user"): lambda request: httpx.Response(
            200, json={"login": "octocat", "name": "Octo"}, headers={"X-OAuth-Scopes": "repo"}
        ),
        ("GET", "/user/emails"): (200, [{"email": "octo@example.com", "primary": True, "verified": True}]),
    }


def _repo_routes():
    return {
        ("GET", "/repos/o/r"): (200, {"default_branch": "dev"}),
        ("GET", "/repos/o/r/branches/dev"): (200, {"commit": {"sha": "base1", "commit": {"tree": {"sha": "T1"}}}}),
        ("GET", "/repos/o/r/git/trees/T1"): (200, {"tree": [{"path": "README.md", "type": "blob", "sha": "b1"}]}),
        ("GET", "/repos/o/r/git/blobs/b1"): (200, {"content": "IyBIaQ==", "encoding": "base64"}),
    }


def _commit_routes(base="base1", new="C2", branch="dev"):
    return {
        ("GET", f"/repos/o/r/git/commits/{base}"): (200, {"tree": {"sha": "T1"}}),
        ("POST", "/repos/o/r/git/blobs"): (201, {"sha": "blob"}),
        ("POST", "/repos/o/r/git/trees"): (201, {"sha": "T2"}),
        ("POST", "/repos/o/r/git/commits"): (201, {"sha": new}),
        ("PATCH", f"/repos/o/r/git/refs/heads/{branch}"): (200, {"object": {"sha": new}}),
    }


def test_generate_commit_message():
    f = lambda p: ProjectFile(p, "")  # noqa: E731
    assert generate_commit_message([]) == "Update files"
    assert generate_commit_message([f("a")]) == "Update a"
    assert generate_commit_message([f("a"), f("b"), f("c")]) == "Update a, b, c"
    assert generate_commit_message([f(str(i)) for i in range(5)]) == "Update 5 files"


# ---------------------------
# token
# ---------------------------

@pytest.mark.asyncio
async def test_verify_token_stores_identity(fake_github, tmp_path, token):
    client, _ = fake_github(_identity_routes())
    ws = _workspace(client, tmp_path)

    user = await ws.verify_token(token)

    assert user == GitHubUser(name="Octo", email="octo@example.com")
    assert ws.github_user == user


@pytest.mark.asyncio
async def test_verify_token_missing_or_malformed(fake_github, tmp_path):
    client, fake = fake_github(_identity_routes())
    ws = _workspace(client, tmp_path)

    with pytest.raises(AuthError):
        await ws.verify_token()
    with pytest.raises(ValidationError):
        await ws.verify_token("not-a-token")
    assert fake.calls == []


# ---------------------------
# import + commit
# ---------------------------

@pytest.mark.asyncio
async def test_import_repository_creates_remote_project(fake_github, tmp_path, token):
    client, _ = fake_github(_repo_routes())
    ws = _workspace(client, tmp_path, token=token)

    project = await ws.import_repository("https://github.com/o/r")

    assert project.name == "o/r"
    assert project.source == RemoteSource(owner="o", repo="r", branch="dev", base_commit_sha="base1")
    assert [(f.path, f.content, f.dirty) for f in project.files] == [("README.md", "# Hi", False)]
    assert ws.store.active_project_name == "o/r"


LONG_OWNER = "my-organization-name"
LONG_REPO = "a-reasonably-descriptive-repository"


def _long_repo_routes():
    base = f"/repos/{LONG_OWNER}/{LONG_REPO}"
    return {
        ("GET", base): (200, {"default_branch": "main"}),
        ("GET", f"{base}/branches/main"): (200, {"commit": {"sha": "base1", "commit": {"tree": {"sha": "T1"}}}}),
        ("GET", f"{base}/git/trees/T1"): (200, {"tree": [{"path": "README.md", "type": "blob", "sha": "b1"}]}),
        ("GET", f"{base}/git/blobs/b1"): (200, {"content": "IyBIaQ==", "encoding": "base64"}),
    }


@pytest.mark.asyncio
async def test_import_repository_rejects_long_name_before_any_request(fake_github, tmp_path, token):
    client, fake = fake_github(_long_repo_routes())
    ws = _workspace(client, tmp_path, token=token)

    with pytest.raises(ValidationError) as ei:
        await ws.import_repository(f"{LONG_OWNER}/{LONG_REPO}")

    assert "50 characters" in ei.value.message
    assert fake.calls == []
    assert client.rate_limiter.time_until_next_slot() == 0.0


@pytest.mark.asyncio
async def test_import_repository_with_explicit_project_name(fake_github, tmp_path, token):
    client, _ = fake_github(_long_repo_routes())
    ws = _workspace(client, tmp_path, token=token)

    project = await ws.import_repository(f"{LONG_OWNER}/{LONG_REPO}", project_name="descriptive")

    assert project.name == "descriptive"
    assert project.source == RemoteSource(
        owner=LONG_OWNER, repo=LONG_REPO, branch="main", base_commit_sha="base1"
    )
    assert [f.path for f in project.files] == ["README.md"]
    assert ws.store.active_project_name == "descriptive"


@pytest.mark.asyncio
async def test_import_repository_existing_requires_overwrite(fake_github, tmp_path, token):
    client, _ = fake_github(_repo_routes())
    ws = _workspace(client, tmp_path, token=token)
    await ws.import_repository("o/r")
    ws.store.update_file("o/r", "local.txt", "edit")

    with pytest.raises(ValidationError):
        await ws.import_repository("o/r")

    project = await ws.import_repository("o/r", overwrite=True)
    assert [f.path for f in project.files] == ["README.md"]


@pytest.mark.asyncio
async def test_commit_requires_verified_identity(fake_github, tmp_path, token):
    client, _ = fake_github(_repo_routes())
    ws = _workspace(client, tmp_path, token=token)
    await ws.import_repository("o/r")
    ws.store.update_file("o/r", "README.md", "# Changed")

    with pytest.raises(AuthError):
        await ws.commit()


@pytest.mark.asyncio
async def test_save_remote_commits_and_advances_base(fake_github, tmp_path, token):
    routes = {**_identity_routes(), **_repo_routes(), **_commit_routes()}
    client, fake = fake_github(routes)
    ws = _workspace(client, tmp_path, token=token)
    await ws.verify_token()
    await ws.import_repository("o/r")
    ws.store.update_file("o/r", "README.md", "# Changed")

    result = await ws.save()

    assert result.source_kind == "remote"
    assert result.commit_sha == "C2"
    assert result.saved_paths == ("README.md",)
    assert ws.store.get_source("o/r").base_commit_sha == "C2"
    assert ws.store.dirty_files("o/r") == ()

    commit_body = next(b for (m, p, b) in fake.calls if m == "POST" and p.endswith("/git/commits"))
    assert commit_body["message"] == "Update README.md"
    assert commit_body["parents"] == ["base1"]


@pytest.mark.asyncio
async def test_commit_keeps_files_edited_during_commit_dirty(fake_github, tmp_path, token):
    ws_holder = {}

    def tree_handler(request: httpx.Request):
        # Simulates an edit landing while the commit is in flight
        ws_holder["ws"].store.update_file("o/r", "README.md", "# Edited again")
        return httpx.Response(201, json={"sha": "T2"})

    routes = {**_identity_routes(), **_repo_routes(), **_commit_routes()}
    routes[("POST", "/repos/o/r/git/trees")] = tree_handler
    client, _ = fake_github(routes)
    ws = _workspace(client, tmp_path, token=token)
    ws_holder["ws"] = ws
    await ws.verify_token()
    await ws.import_repository("o/r")
    ws.store.update_file("o/r", "README.md", "# Changed")
    ws.store.update_file("o/r", "NOTES.md", "notes")

    await ws.commit(message="Sync")

    dirty = {f.path: f.content for f in ws.store.dirty_files("o/r")}
    assert dirty == {"README.md": "# Edited again"}


@pytest.mark.asyncio
async def test_commit_non_fast_forward_leaves_project_dirty(fake_github, tmp_path, token):
    routes = {**_identity_routes(), **_repo_routes(), **_commit_routes()}
    routes[("PATCH", "/repos/o/r/git/refs/heads/dev")] = (422, {"message": "Update is not a fast forward"})
    client, _ = fake_github(routes)
    ws = _workspace(client, tmp_path, token=token)
    await ws.verify_token()
    await ws.import_repository("o/r")
    ws.store.update_file("o/r", "README.md", "# Changed")

    with pytest.raises(NonFastForwardError):
        await ws.commit()

    assert ws.store.get_source("o/r").base_commit_sha == "base1"
    assert [f.path for f in ws.store.dirty_files("o/r")] == ["README.md"]


@pytest.mark.asyncio
async def test_commit_rule_violation_gets_signing_hint(fake_github, tmp_path, token):
    routes = {**_identity_routes(), **_repo_routes(), **_commit_routes()}
    routes[("PATCH", "/repos/o/r/git/refs/heads/dev")] = (409, {"message": "Repository rule violations found"})
    client, _ = fake_github(routes)
    ws = _workspace(client, tmp_path, token=token)
    await ws.verify_token()
    await ws.import_repository("o/r")
    ws.store.update_file("o/r", "README.md", "# Changed")

    with pytest.raises(RemoteServiceError) as ei:
        await ws.commit()
    assert "signed commits" in ei.value.message


@pytest.mark.asyncio
async def test_commit_non_remote_project_is_validation_error(fake_github, tmp_path, token):
    client, _ = fake_github({})
    ws = _workspace(client, tmp_path, token=token)
    ws.store.create_project("demo")

    with pytest.raises(ValidationError):
        await ws.commit()


# ---------------------------
# save: memory + local
# ---------------------------

@pytest.mark.asyncio
async def test_save_memory_project_is_validation_error(fake_github, tmp_path):
    client, _ = fake_github({})
    ws = _workspace(client, tmp_path)
    ws.store.create_project("demo")
    ws.store.update_file("demo", "a.txt", "x")

    with pytest.raises(ValidationError):
        await ws.save()
    assert [f.path for f in ws.store.dirty_files("demo")] == ["a.txt"]


@pytest.mark.asyncio
async def test_save_without_active_project(fake_github, tmp_path):
    client, _ = fake_github({})
    ws = _workspace(client, tmp_path)

    with pytest.raises(ValidationError):
        await ws.save()


@pytest.mark.asyncio
async def test_open_folder_and_save_local(fake_github, tmp_path):
    client, fake = fake_github({})
    folder = tmp_path / "site"
    folder.mkdir()
    (folder / "index.html").write_text("<p>old</p>", encoding="utf-8")
    ws = _workspace(client, tmp_path)

    project = await ws.open_folder("site")
    assert project.name == "site"
    assert project.source == LocalSource(root=folder.resolve())
    assert project.dirty_files() == ()

    ws.store.update_file("site", "index.html", "<p>new</p>")
    ws.store.update_file("site", "css/app.css", "p { color: red; }")

    result = await ws.save()

    assert result.source_kind == "local"
    assert set(result.saved_paths) == {"index.html", "css/app.css"}
    assert (folder / "index.html").read_text(encoding="utf-8") == "<p>new</p>"
    assert (folder / "css/app.css").read_text(encoding="utf-8") == "p { color: red; }"
    assert ws.store.dirty_files("site") == ()
    assert fake.calls == []


@pytest.mark.asyncio
async def test_save_local_partial_failure_cleans_written_only(fake_github, tmp_path):
    client, _ = fake_github({})
    folder = tmp_path / "site"
    folder.mkdir()
    ws = _workspace(client, tmp_path, max_file_bytes=8)
    await ws.open_folder("site")
    ws.store.update_file("site", "a.txt", "ok")
    ws.store.update_file("site", "b.txt", "way too large")

    with pytest.raises(ValidationError):
        await ws.save()

    assert [f.path for f in ws.store.dirty_files("site")] == ["b.txt"]


@pytest.mark.asyncio
async def test_open_folder_outside_root(fake_github, tmp_path):
    client, _ = fake_github({})
    granted = tmp_path / "granted"
    granted.mkdir()
    ws = Workspace(
        store=ProjectStore(),
        engine=GitSyncEngine(client=client),
        local=LocalDirectoryAdapter(project_root=granted),
        identity=IdentityVerifier(client=client),
    )

    with pytest.raises(StorageError):
        await ws.open_folder("../")


# ---------------------------
# assistant results
# ---------------------------

@pytest.mark.asyncio
async def test_apply_generate_creates_clean_memory_project(fake_github, tmp_path):
    client, _ = fake_github({})
    ws = _workspace(client, tmp_path)
    payload = json.dumps([{"path": "index.html", "content": "<h1>Todo</h1>"}])

    result = await ws.apply_assistant_payload(AssistantOperation.GENERATE, payload, new_project_name="todo")

    assert [f.path for f in result.files] == ["index.html"]
    project = ws.store.get_project("todo")
    assert isinstance(project.source, MemorySource)
    assert project.dirty_files() == ()
    assert ws.store.active_project_name == "todo"


@pytest.mark.asyncio
async def test_apply_generate_requires_name(fake_github, tmp_path):
    client, _ = fake_github({})
    ws = _workspace(client, tmp_path)

    with pytest.raises(ValidationError):
        await ws.apply_assistant_payload(AssistantOperation.GENERATE, "[]")


@pytest.mark.asyncio
async def test_apply_refactor_merges_dirty_files_into_memory_project(fake_github, tmp_path):
    client, _ = fake_github({})
    ws = _workspace(client, tmp_path)
    ws.store.create_project("demo", [ProjectFile("a.py", "old"), ProjectFile("b.py", "keep")])
    payload = json.dumps({"summary": "Renamed", "files": [{"path": "a.py", "content": "new"}]})

    result = await ws.apply_assistant_payload(AssistantOperation.REFACTOR, payload)

    assert result.text == "Renamed"
    files = {f.path: (f.content, f.dirty) for f in ws.store.get_files("demo")}
    assert files == {"a.py": ("new", True), "b.py": ("keep", False)}


@pytest.mark.asyncio
async def test_apply_debug_to_local_project_saves_immediately(fake_github, tmp_path):
    client, _ = fake_github({})
    folder = tmp_path / "app"
    folder.mkdir()
    (folder / "main.py").write_text("print(1/0)", encoding="utf-8")
    ws = _workspace(client, tmp_path)
    await ws.open_folder("app")
    payload = json.dumps({"diagnosis": "Division by zero", "files": [{"path": "main.py", "content": "print(1)"}]})

    await ws.apply_assistant_payload(AssistantOperation.DEBUG, payload)

    assert (folder / "main.py").read_text(encoding="utf-8") == "print(1)"
    assert ws.store.dirty_files("app") == ()


@pytest.mark.asyncio
async def test_run_assistant_through_gateway(fake_github, tmp_path):
    class Backend:
        async def generate(self, operation, files, user_request):
            return json.dumps([{"path": "main.py", "content": "print('hi')"}])

    client, _ = fake_github({})
    gateway = AssistantGateway(backend=Backend(), rate_limiter=RateLimiter(max_requests=30, window_seconds=60.0))
    ws = _workspace(client, tmp_path, assistant=gateway)

    await ws.run_assistant(AssistantOperation.GENERATE, "hello world", new_project_name="hello")

    assert [f.path for f in ws.store.get_files("hello")] == ["main.py"]


@pytest.mark.asyncio
async def test_run_assistant_without_backend(fake_github, tmp_path):
    client, _ = fake_github({})
    ws = _workspace(client, tmp_path)

    with pytest.raises(ValidationError):
        await ws.run_assistant(AssistantOperation.EXPLAIN, "", project="x")

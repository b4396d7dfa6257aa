"""
Persistence layer for projects, LinkedIn posts and reactor profiles.
Uses Supabase when credentials are configured (production) and a local
JSON file otherwise (development and tests).

Expected Supabase tables: projects, linkedin_posts, linkedin_profiles
(see supabase/schema.sql). linkedin_posts.post_url carries a unique
constraint so find-or-create is safe under concurrent submissions.
"""

import json
import logging
import os
import threading
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence

from supabase import Client, create_client

from .models import Post, ProfileRecord, Project, ProjectWithPosts, StoredProfile

logger = logging.getLogger(__name__)

PROJECTS = "projects"
POSTS = "linkedin_posts"
PROFILES = "linkedin_profiles"

# One lock per local file; guards read-modify-write cycles
_local_locks: Dict[str, threading.Lock] = {}
_locks_guard = threading.Lock()


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _lock_for(path: str) -> threading.Lock:
    with _locks_guard:
        return _local_locks.setdefault(os.path.abspath(path), threading.Lock())


class Database:
    def __init__(self, supabase: Optional[Client] = None, local_file: str = "reactors_db.json"):
        self.supabase = supabase
        self.local_file = local_file
        self._lock = _lock_for(local_file)

    @classmethod
    def from_settings(cls, settings) -> "Database":
        supabase: Optional[Client] = None
        if settings.supabase_url and settings.supabase_service_key:
            supabase = create_client(settings.supabase_url, settings.supabase_service_key)
        else:
            logger.warning("Supabase credentials missing; using local store %s", settings.local_db_file)
        return cls(supabase=supabase, local_file=settings.local_db_file)

    # -------------------------------------------------------------------
    # Local JSON store
    # -------------------------------------------------------------------
    def _read_local(self) -> Dict[str, List[Dict[str, Any]]]:
        data: Dict[str, List[Dict[str, Any]]] = {}
        if os.path.exists(self.local_file):
            with open(self.local_file, "r") as f:
                data = json.load(f)
        for table in (PROJECTS, POSTS, PROFILES):
            data.setdefault(table, [])
        return data

    def _write_local(self, data: Dict[str, List[Dict[str, Any]]]) -> None:
        tmp = f"{self.local_file}.tmp"
        with open(tmp, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp, self.local_file)

    @staticmethod
    def _next_id(rows: Sequence[Dict[str, Any]]) -> int:
        return max((r["id"] for r in rows), default=0) + 1

    def _insert_local(self, data: Dict[str, List[Dict[str, Any]]], table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        row = {"id": self._next_id(data[table]), **row, "created_at": now_iso()}
        data[table].append(row)
        return row

    # -------------------------------------------------------------------
    # Projects
    # -------------------------------------------------------------------
    def create_project(self, name: str) -> Project:
        if self.supabase:
            result = self.supabase.table(PROJECTS).insert({"name": name}).execute()
            if result.data:
                return Project(**result.data[0])
            raise RuntimeError(f"Failed to insert project: {result}")
        with self._lock:
            data = self._read_local()
            row = self._insert_local(data, PROJECTS, {"name": name})
            self._write_local(data)
        return Project(**row)

    def list_projects(self) -> List[Project]:
        if self.supabase:
            result = self.supabase.table(PROJECTS).select("*").order("created_at").execute()
            rows = result.data or []
        else:
            with self._lock:
                rows = self._read_local()[PROJECTS]
            rows = sorted(rows, key=lambda r: r.get("created_at", ""))
        return [Project(**r) for r in rows]

    def get_project(self, project_id: int) -> Optional[Project]:
        if self.supabase:
            result = self.supabase.table(PROJECTS).select("*").eq("id", project_id).execute()
            return Project(**result.data[0]) if result.data else None
        with self._lock:
            rows = self._read_local()[PROJECTS]
        row = next((r for r in rows if r["id"] == project_id), None)
        return Project(**row) if row else None

    def get_project_with_posts(self, project_id: int) -> Optional[ProjectWithPosts]:
        project = self.get_project(project_id)
        if not project:
            return None
        if self.supabase:
            result = self.supabase.table(POSTS).select("*").eq("project_id", project_id).execute()
            rows = result.data or []
        else:
            with self._lock:
                rows = [r for r in self._read_local()[POSTS] if r["project_id"] == project_id]
        return ProjectWithPosts(**project.model_dump(), posts=[Post(**r) for r in rows])

    # -------------------------------------------------------------------
    # Posts
    # -------------------------------------------------------------------
    def find_post_by_url(self, post_url: str) -> Optional[Post]:
        """Exact string match; URLs are not normalised."""
        if self.supabase:
            result = self.supabase.table(POSTS).select("*").eq("post_url", post_url).execute()
            return Post(**result.data[0]) if result.data else None
        with self._lock:
            rows = self._read_local()[POSTS]
        row = next((r for r in rows if r["post_url"] == post_url), None)
        return Post(**row) if row else None

    def create_post(self, project_id: int, post_url: str) -> Post:
        if self.supabase:
            result = (
                self.supabase.table(POSTS)
                .insert({"project_id": project_id, "post_url": post_url})
                .execute()
            )
            if result.data:
                return Post(**result.data[0])
            raise RuntimeError(f"Failed to insert post: {result}")
        with self._lock:
            data = self._read_local()
            row = self._insert_local(data, POSTS, {"project_id": project_id, "post_url": post_url})
            self._write_local(data)
        return Post(**row)

    def find_or_create_post(self, project_id: int, post_url: str) -> Post:
        """
        At most one post per URL. A URL already stored under another
        project keeps its original project.
        """
        if self.supabase:
            result = (
                self.supabase.table(POSTS)
                .upsert(
                    {"project_id": project_id, "post_url": post_url},
                    on_conflict="post_url",
                    ignore_duplicates=True,
                )
                .execute()
            )
            if result.data:
                return Post(**result.data[0])
            existing = self.find_post_by_url(post_url)
            if existing:
                return existing
            raise RuntimeError(f"Failed to upsert post for {post_url}")

        with self._lock:
            data = self._read_local()
            row = next((r for r in data[POSTS] if r["post_url"] == post_url), None)
            if row is None:
                row = self._insert_local(data, POSTS, {"project_id": project_id, "post_url": post_url})
                self._write_local(data)
        return Post(**row)

    # -------------------------------------------------------------------
    # Profiles
    # -------------------------------------------------------------------
    def save_profiles(self, post_id: int, profiles: Sequence[ProfileRecord]) -> List[StoredProfile]:
        if not profiles:
            return []
        rows = [
            {
                "post_id": post_id,
                "profile_url": p.profile_url,
                "name": p.name or None,
                "headline": p.headline or None,
            }
            for p in profiles
        ]
        if self.supabase:
            result = self.supabase.table(PROFILES).insert(rows).execute()
            return [StoredProfile(**r) for r in (result.data or [])]
        with self._lock:
            data = self._read_local()
            inserted = [self._insert_local(data, PROFILES, r) for r in rows]
            self._write_local(data)
        return [StoredProfile(**r) for r in inserted]

    def list_profiles(self, post_id: int) -> List[StoredProfile]:
        if self.supabase:
            result = self.supabase.table(PROFILES).select("*").eq("post_id", post_id).execute()
            rows = result.data or []
        else:
            with self._lock:
                rows = [r for r in self._read_local()[PROFILES] if r["post_id"] == post_id]
        return [StoredProfile(**r) for r in rows]

"""DB-backed catalog store (Postgres via psycopg2)."""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from typing import Any, Dict

import psycopg2
import psycopg2.errors
import psycopg2.extras

from app.db import execute, fetch_all, fetch_one, get_conn
from storekit.errors import RecordNotFound, ReferenceConflict

logger = logging.getLogger("storefront.db")


SCHEMA_SQL = """
create table if not exists stores (
  id text primary key,
  name text not null,
  user_id text not null,
  created_at timestamptz not null default now(),
  updated_at timestamptz not null default now()
);
create index if not exists stores_user_id_idx on stores (user_id);

create table if not exists billboards (
  id text primary key,
  store_id text not null references stores(id) on delete restrict,
  label text not null,
  image_url text not null,
  created_at timestamptz not null default now(),
  updated_at timestamptz not null default now()
);
create index if not exists billboards_store_id_idx on billboards (store_id);

create table if not exists categories (
  id text primary key,
  store_id text not null references stores(id) on delete restrict,
  billboard_id text not null references billboards(id) on delete restrict,
  name text not null,
  created_at timestamptz not null default now(),
  updated_at timestamptz not null default now()
);
create index if not exists categories_store_id_idx on categories (store_id);
create index if not exists categories_billboard_id_idx on categories (billboard_id);

create table if not exists colors (
  id text primary key,
  store_id text not null references stores(id) on delete restrict,
  name text not null,
  value text not null,
  created_at timestamptz not null default now(),
  updated_at timestamptz not null default now()
);
create index if not exists colors_store_id_idx on colors (store_id);

create table if not exists sizes (
  id text primary key,
  store_id text not null references stores(id) on delete restrict,
  name text not null,
  value text not null,
  created_at timestamptz not null default now(),
  updated_at timestamptz not null default now()
);
create index if not exists sizes_store_id_idx on sizes (store_id);

create table if not exists products (
  id text primary key,
  store_id text not null references stores(id) on delete restrict,
  category_id text not null references categories(id) on delete restrict,
  size_id text not null references sizes(id) on delete restrict,
  color_id text not null references colors(id) on delete restrict,
  name text not null,
  price numeric(12, 2) not null,
  is_featured boolean not null default false,
  is_archived boolean not null default false,
  created_at timestamptz not null default now(),
  updated_at timestamptz not null default now()
);
create index if not exists products_store_id_idx on products (store_id, created_at desc);
create index if not exists products_category_id_idx on products (category_id);
create index if not exists products_size_id_idx on products (size_id);
create index if not exists products_color_id_idx on products (color_id);

create table if not exists images (
  id text primary key,
  product_id text not null references products(id) on delete cascade,
  url text not null,
  created_at timestamptz not null default now(),
  updated_at timestamptz not null default now()
);
create index if not exists images_product_id_idx on images (product_id);
"""


_TABLES: Dict[str, dict] = {
    "billboard": {"table": "billboards", "columns": {"label": "label", "imageUrl": "image_url"}},
    "category": {"table": "categories", "columns": {"name": "name", "billboardId": "billboard_id"}},
    "color": {"table": "colors", "columns": {"name": "name", "value": "value"}},
    "size": {"table": "sizes", "columns": {"name": "name", "value": "value"}},
    "product": {
        "table": "products",
        "columns": {
            "name": "name",
            "price": "price",
            "categoryId": "category_id",
            "sizeId": "size_id",
            "colorId": "color_id",
            "isFeatured": "is_featured",
            "isArchived": "is_archived",
        },
    },
}

_SELECT: Dict[str, str] = {
    "category": """
        select t.*, to_jsonb(b) as billboard
        from categories t
        left join billboards b on b.id = t.billboard_id
    """,
    "product": """
        select
          t.*,
          to_jsonb(c) as category,
          to_jsonb(s) as size,
          to_jsonb(co) as color,
          coalesce(
            (
              select jsonb_agg(to_jsonb(i) order by i.created_at, i.id)
              from images i
              where i.product_id = t.id
            ),
            '[]'::jsonb
          ) as images
        from products t
        left join categories c on c.id = t.category_id
        left join sizes s on s.id = t.size_id
        left join colors co on co.id = t.color_id
    """,
}

_NESTED_KINDS = {"billboard": "billboard", "category": "category", "size": "size", "color": "color"}


def ensure_schema() -> None:
    with get_conn() as conn:
        execute(conn, SCHEMA_SQL, query_name="schema.ensure")
    logger.info("db_schema_ensured")


def _camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


def _plain(value: Any) -> Any:
    if isinstance(value, Decimal):
        return float(value)
    return value


def _row_to_record(row: dict | None) -> dict | None:
    if row is None:
        return None
    record: dict = {}
    for key, value in row.items():
        if key in _NESTED_KINDS and isinstance(value, dict):
            record[key] = _row_to_record(value)
        elif key == "images" and isinstance(value, list):
            record[key] = [
                {"id": img.get("id"), "url": img.get("url"), "createdAt": img.get("created_at")}
                for img in value
                if isinstance(img, dict)
            ]
        else:
            record[_camel(key)] = _plain(value)
    return record


def _select_sql(kind_key: str) -> str:
    table = _TABLES[kind_key]["table"]
    return _SELECT.get(kind_key) or f"select t.* from {table} t"


def _insert_images(conn, product_id: str, images: list[dict]) -> None:
    if not images:
        return
    with conn.cursor() as cur:
        psycopg2.extras.execute_values(
            cur,
            "insert into images (id, product_id, url) values %s",
            [(str(uuid.uuid4()), product_id, img["url"]) for img in images],
        )


class DbCatalogStore:
    # stores

    def create_store(self, user_id: str, name: str) -> dict:
        with get_conn() as conn:
            row = fetch_one(
                conn,
                """
                insert into stores (id, name, user_id)
                values (%s, %s, %s)
                returning *
                """,
                [str(uuid.uuid4()), name, user_id],
                query_name="stores.insert",
            )
        return _row_to_record(row)

    def list_stores(self, user_id: str) -> list[dict]:
        with get_conn() as conn:
            rows = fetch_all(
                conn,
                "select * from stores where user_id=%s order by created_at asc",
                [user_id],
                query_name="stores.list_by_user",
            )
        return [_row_to_record(r) for r in rows]

    def get_store(self, store_id: str) -> dict | None:
        with get_conn() as conn:
            row = fetch_one(conn, "select * from stores where id=%s", [store_id], query_name="stores.get")
        return _row_to_record(row)

    def update_store(self, store_id: str, name: str) -> dict:
        with get_conn() as conn:
            row = fetch_one(
                conn,
                """
                update stores
                set name=%s, updated_at=now()
                where id=%s
                returning *
                """,
                [name, store_id],
                query_name="stores.update",
            )
        if row is None:
            raise RecordNotFound("store not found", "store", store_id)
        return _row_to_record(row)

    def delete_store(self, store_id: str) -> dict:
        try:
            with get_conn() as conn:
                row = fetch_one(
                    conn,
                    "delete from stores where id=%s returning *",
                    [store_id],
                    query_name="stores.delete",
                )
        except psycopg2.errors.ForeignKeyViolation as exc:
            raise ReferenceConflict("store still has catalog records", "store", store_id, exc.diag.table_name) from exc
        if row is None:
            raise RecordNotFound("store not found", "store", store_id)
        return _row_to_record(row)

    # catalog records

    def _get(self, conn, kind_key: str, store_id: str, record_id: str) -> dict | None:
        row = fetch_one(
            conn,
            f"{_select_sql(kind_key)} where t.store_id=%s and t.id=%s",
            [store_id, record_id],
            query_name=f"{_TABLES[kind_key]['table']}.get",
        )
        return _row_to_record(row)

    def create(self, kind_key: str, store_id: str, data: dict) -> dict:
        cfg = _TABLES[kind_key]
        columns = [col for field_id, col in cfg["columns"].items() if field_id in data]
        values = [data[field_id] for field_id in cfg["columns"] if field_id in data]
        record_id = str(uuid.uuid4())
        placeholders = ", ".join(["%s"] * (len(columns) + 2))
        with get_conn() as conn:
            execute(
                conn,
                f"insert into {cfg['table']} (id, store_id, {', '.join(columns)}) values ({placeholders})",
                [record_id, store_id, *values],
                query_name=f"{cfg['table']}.insert",
            )
            if kind_key == "product":
                _insert_images(conn, record_id, data.get("images") or [])
            return self._get(conn, kind_key, store_id, record_id)

    def update(self, kind_key: str, store_id: str, record_id: str, data: dict) -> dict:
        cfg = _TABLES[kind_key]
        assignments = [f"{col}=%s" for field_id, col in cfg["columns"].items() if field_id in data]
        values = [data[field_id] for field_id in cfg["columns"] if field_id in data]
        with get_conn() as conn:
            row = fetch_one(
                conn,
                f"""
                update {cfg['table']}
                set {', '.join(assignments + ['updated_at=now()'])}
                where store_id=%s and id=%s
                returning id
                """,
                [*values, store_id, record_id],
                query_name=f"{cfg['table']}.update",
            )
            if row is None:
                raise RecordNotFound(f"{kind_key} not found", kind_key, record_id)
            if kind_key == "product":
                execute(conn, "delete from images where product_id=%s", [record_id], query_name="images.delete_by_product")
                _insert_images(conn, record_id, data.get("images") or [])
            return self._get(conn, kind_key, store_id, record_id)

    def delete(self, kind_key: str, store_id: str, record_id: str) -> dict:
        cfg = _TABLES[kind_key]
        try:
            with get_conn() as conn:
                existing = self._get(conn, kind_key, store_id, record_id)
                if existing is None:
                    raise RecordNotFound(f"{kind_key} not found", kind_key, record_id)
                execute(
                    conn,
                    f"delete from {cfg['table']} where store_id=%s and id=%s",
                    [store_id, record_id],
                    query_name=f"{cfg['table']}.delete",
                )
        except psycopg2.errors.ForeignKeyViolation as exc:
            referenced_by = getattr(exc.diag, "table_name", None)
            logger.warning("db_delete_blocked table=%s id=%s referenced_by=%s", cfg["table"], record_id, referenced_by)
            raise ReferenceConflict(f"{kind_key} is still referenced", kind_key, record_id, referenced_by) from exc
        return existing

    def get(self, kind_key: str, store_id: str, record_id: str) -> dict | None:
        with get_conn() as conn:
            return self._get(conn, kind_key, store_id, record_id)

    def exists(self, kind_key: str, store_id: str, record_id: str) -> bool:
        table = _TABLES[kind_key]["table"]
        with get_conn() as conn:
            row = fetch_one(
                conn,
                f"select 1 as ok from {table} where store_id=%s and id=%s",
                [store_id, record_id],
                query_name=f"{table}.exists",
            )
        return bool(row)

    def list(
        self,
        kind_key: str,
        store_id: str,
        filters: dict | None = None,
        include_archived: bool = True,
    ) -> list[dict]:
        cfg = _TABLES[kind_key]
        where = ["t.store_id=%s"]
        params: list = [store_id]
        for field_id, value in (filters or {}).items():
            column = cfg["columns"].get(field_id)
            if column is None or value is None:
                continue
            where.append(f"t.{column}=%s")
            params.append(value)
        if not include_archived and kind_key == "product":
            where.append("t.is_archived=false")
        with get_conn() as conn:
            rows = fetch_all(
                conn,
                f"""
                {_select_sql(kind_key)}
                where {' and '.join(where)}
                order by t.created_at desc, t.id desc
                """,
                params,
                query_name=f"{cfg['table']}.list",
            )
        return [_row_to_record(r) for r in rows]

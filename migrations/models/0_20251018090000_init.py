from tortoise import BaseDBAsyncClient


async def upgrade(db: BaseDBAsyncClient) -> str:
    return """
        CREATE TABLE IF NOT EXISTS "ticket" (
    "id" VARCHAR(32) NOT NULL  PRIMARY KEY,
    "ticket_number" BIGINT NOT NULL UNIQUE,
    "name" TEXT NOT NULL,
    "urgency_type" TEXT,
    "service_type" TEXT NOT NULL,
    "status" VARCHAR(16) NOT NULL  DEFAULT 'waiting',
    "created_at" TIMESTAMPTZ NOT NULL
);
CREATE INDEX IF NOT EXISTS "idx_ticket_status_8b1f0e" ON "ticket" ("status", "created_at");
CREATE TABLE IF NOT EXISTS "ticket_counter" (
    "name" VARCHAR(32) NOT NULL  PRIMARY KEY,
    "value" BIGINT NOT NULL
);
CREATE TABLE IF NOT EXISTS "aerich" (
    "id" SERIAL NOT NULL PRIMARY KEY,
    "version" VARCHAR(255) NOT NULL,
    "app" VARCHAR(100) NOT NULL,
    "content" JSONB NOT NULL
);"""


async def downgrade(db: BaseDBAsyncClient) -> str:
    return """
        DROP TABLE IF EXISTS "ticket_counter";
DROP TABLE IF EXISTS "ticket";"""

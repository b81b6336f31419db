"""
Repository for Google accounts and the user/premium/rule snapshot the
webhook processor runs on.
"""

from datetime import datetime
from typing import Any

from app.db.helpers import execute_query, fetch_all, fetch_one, with_db_retry
from app.infrastructure.observability.logging import get_logger
from app.models.domain.user_domain import (
    AccountCredential,
    PremiumSnapshot,
    Rule,
    RuleAction,
    WebhookAccount,
    WebhookUser,
)
from app.services.infrastructure.encryption_service import (
    decrypt_optional_token,
    encrypt_token,
)

logger = get_logger(__name__)


class AccountRepository:
    """Reads webhook snapshots and persists refreshed OAuth tokens."""

    @staticmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def find_by_email(email: str) -> WebhookAccount | None:
        """Load account + user + premium + enabled rules for a Google mailbox address."""
        row = await fetch_one(
            """
            SELECT
                a.user_id,
                a.provider_account_id,
                a.access_token,
                a.refresh_token,
                a.expires_at,
                u.email,
                u.about,
                u.ai_provider,
                u.ai_model,
                u.ai_api_key,
                u.cold_email_blocker,
                u.cold_email_prompt,
                p.renews_at AS premium_renews_at,
                p.ai_automation_access,
                p.cold_email_blocker_access
            FROM accounts a
            JOIN users u ON u.id = a.user_id
            LEFT JOIN premiums p ON p.id = u.premium_id
            WHERE lower(u.email) = lower(%s)
              AND a.provider = 'google'
            LIMIT 1
            """,
            (email,),
        )
        if not row:
            return None

        user_id = str(row["user_id"])
        rule_rows = await fetch_all(
            """
            SELECT
                r.id,
                r.name,
                r.enabled,
                r.type,
                r.instructions,
                r.from_pattern,
                r.to_pattern,
                r.subject_pattern,
                r.body_pattern,
                r.run_on_threads,
                COALESCE(
                    json_agg(
                        json_build_object(
                            'type', ac.type,
                            'label', ac.label,
                            'subject', ac.subject,
                            'content', ac.content,
                            'to', ac.to_address,
                            'cc', ac.cc,
                            'bcc', ac.bcc
                        )
                        ORDER BY ac.position
                    ) FILTER (WHERE ac.id IS NOT NULL),
                    '[]'::json
                ) AS actions
            FROM rules r
            LEFT JOIN actions ac ON ac.rule_id = r.id
            WHERE r.user_id = %s
              AND r.enabled = true
            GROUP BY r.id
            ORDER BY r.created_at
            """,
            (user_id,),
        )

        return _row_to_account(row, [_row_to_rule(r) for r in rule_rows])

    @staticmethod
    @with_db_retry(max_retries=3, base_delay=0.1)
    async def save_refreshed_tokens(
        user_id: str,
        provider_account_id: str,
        access_token: str,
        expires_at: datetime | None,
        refresh_token: str | None = None,
    ) -> bool:
        encrypted_refresh = encrypt_token(refresh_token) if refresh_token else None
        affected = await execute_query(
            """
            UPDATE accounts
            SET access_token = %s,
                refresh_token = COALESCE(%s, refresh_token),
                expires_at = %s,
                updated_at = NOW()
            WHERE user_id = %s
              AND provider = 'google'
              AND provider_account_id = %s
            """,
            (encrypt_token(access_token), encrypted_refresh, expires_at, user_id, provider_account_id),
        )
        logger.info("Refreshed Google tokens saved", user_id=user_id, updated=affected > 0)
        return affected > 0


def _row_to_rule(row: dict[str, Any]) -> Rule:
    return Rule(
        id=str(row["id"]),
        name=row["name"],
        enabled=row["enabled"],
        type=row["type"],
        instructions=row.get("instructions"),
        from_pattern=row.get("from_pattern"),
        to_pattern=row.get("to_pattern"),
        subject_pattern=row.get("subject_pattern"),
        body_pattern=row.get("body_pattern"),
        run_on_threads=bool(row.get("run_on_threads")),
        actions=tuple(RuleAction(**action) for action in row.get("actions") or []),
    )


def _row_to_account(row: dict[str, Any], rules: list[Rule]) -> WebhookAccount:
    premium = None
    if row.get("premium_renews_at") is not None or row.get("ai_automation_access") is not None:
        premium = PremiumSnapshot(
            renews_at=row.get("premium_renews_at"),
            ai_automation_access=bool(row.get("ai_automation_access")),
            cold_email_blocker_access=bool(row.get("cold_email_blocker_access")),
        )

    return WebhookAccount(
        user_id=str(row["user_id"]),
        credential=AccountCredential(
            access_token=decrypt_optional_token(row.get("access_token")),
            refresh_token=decrypt_optional_token(row.get("refresh_token")),
            expires_at=row.get("expires_at"),
            provider_account_id=row["provider_account_id"],
        ),
        user=WebhookUser(
            id=str(row["user_id"]),
            email=row.get("email"),
            about=row.get("about") or "",
            ai_provider=row.get("ai_provider"),
            ai_model=row.get("ai_model"),
            ai_api_key=decrypt_optional_token(row.get("ai_api_key")),
            cold_email_blocker=row.get("cold_email_blocker"),
            cold_email_prompt=row.get("cold_email_prompt"),
        ),
        premium=premium,
        rules=tuple(rules),
    )

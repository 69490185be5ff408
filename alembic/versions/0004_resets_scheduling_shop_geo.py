from alembic import op

revision = "0004_resets_scheduling_shop_geo"
down_revision = "0003_campaign_updates_comments"
branch_labels = None
depends_on = None


def upgrade():
    op.execute(
        """
    -- forgot-password links; only the sha256 of the token is stored
    CREATE TABLE IF NOT EXISTS password_reset_tokens (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
      token_hash TEXT NOT NULL UNIQUE,
      expires_at TIMESTAMPTZ NOT NULL,
      used_at TIMESTAMPTZ NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    CREATE INDEX IF NOT EXISTS idx_password_reset_tokens_user ON password_reset_tokens(user_id);

    ALTER TABLE campaign_updates ADD COLUMN IF NOT EXISTS image_url TEXT NULL;
    ALTER TABLE campaign_updates ADD COLUMN IF NOT EXISTS scheduled_for TIMESTAMPTZ NULL;

    ALTER TABLE update_comments ADD COLUMN IF NOT EXISTS updated_at TIMESTAMPTZ NULL;

    ALTER TABLE shops ADD COLUMN IF NOT EXISTS category TEXT NULL;
    ALTER TABLE shops ADD COLUMN IF NOT EXISTS latitude DOUBLE PRECISION NULL
      CHECK (latitude IS NULL OR latitude BETWEEN -90 AND 90);
    ALTER TABLE shops ADD COLUMN IF NOT EXISTS longitude DOUBLE PRECISION NULL
      CHECK (longitude IS NULL OR longitude BETWEEN -180 AND 180);
    CREATE INDEX IF NOT EXISTS idx_shops_status_category ON shops(status, category);

    -- a refund revokes an unredeemed reward
    ALTER TABLE user_rewards DROP CONSTRAINT IF EXISTS user_rewards_status_check;
    ALTER TABLE user_rewards ADD CONSTRAINT user_rewards_status_check
      CHECK (status IN ('pending','completed','redeemed','revoked'));
    ALTER TABLE user_rewards ADD COLUMN IF NOT EXISTS revoked_at TIMESTAMPTZ NULL;
    """
    )


def downgrade():
    op.execute(
        """
    UPDATE user_rewards SET status = 'pending' WHERE status = 'revoked';
    ALTER TABLE user_rewards DROP COLUMN IF EXISTS revoked_at;
    ALTER TABLE user_rewards DROP CONSTRAINT IF EXISTS user_rewards_status_check;
    ALTER TABLE user_rewards ADD CONSTRAINT user_rewards_status_check
      CHECK (status IN ('pending','completed','redeemed'));

    DROP INDEX IF EXISTS idx_shops_status_category;
    ALTER TABLE shops DROP COLUMN IF EXISTS longitude;
    ALTER TABLE shops DROP COLUMN IF EXISTS latitude;
    ALTER TABLE shops DROP COLUMN IF EXISTS category;

    ALTER TABLE update_comments DROP COLUMN IF EXISTS updated_at;

    ALTER TABLE campaign_updates DROP COLUMN IF EXISTS scheduled_for;
    ALTER TABLE campaign_updates DROP COLUMN IF EXISTS image_url;

    DROP TABLE IF EXISTS password_reset_tokens;
    """
    )

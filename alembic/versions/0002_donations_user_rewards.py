from alembic import op

revision = "0002_donations_user_rewards"
down_revision = "0001_users_shops_campaigns"
branch_labels = None
depends_on = None


def upgrade():
    op.execute(
        """
    CREATE TABLE IF NOT EXISTS donations (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      campaign_id UUID NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
      user_id UUID NULL REFERENCES users(id) ON DELETE SET NULL,
      amount NUMERIC(12,2) NOT NULL CHECK (amount > 0),
      currency TEXT NOT NULL DEFAULT 'USD',
      status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending','completed','refunded')),
      reward_id UUID NULL REFERENCES reward_tiers(id) ON DELETE SET NULL,
      paypal_order_id TEXT NOT NULL UNIQUE,
      paypal_capture_id TEXT NULL,
      donation_date TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    CREATE INDEX IF NOT EXISTS idx_donations_campaign_status ON donations(campaign_id, status);
    CREATE INDEX IF NOT EXISTS idx_donations_user_id ON donations(user_id);

    -- one reward per donation; status only moves forward
    CREATE TABLE IF NOT EXISTS user_rewards (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
      reward_id UUID NOT NULL REFERENCES reward_tiers(id),
      campaign_id UUID NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
      donation_id UUID NOT NULL UNIQUE REFERENCES donations(id) ON DELETE CASCADE,
      status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending','completed','redeemed')),
      claimed_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      approved_at TIMESTAMPTZ NULL,
      redeemed_at TIMESTAMPTZ NULL
    );
    CREATE INDEX IF NOT EXISTS idx_user_rewards_user_id ON user_rewards(user_id);
    CREATE INDEX IF NOT EXISTS idx_user_rewards_reward_id ON user_rewards(reward_id);
    """
    )


def downgrade():
    op.execute(
        """
    DROP TABLE IF EXISTS user_rewards;
    DROP TABLE IF EXISTS donations;
    """
    )

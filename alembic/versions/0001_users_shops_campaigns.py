from alembic import op

revision = "0001_users_shops_campaigns"
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    op.execute(
        """
    CREATE EXTENSION IF NOT EXISTS "pgcrypto";
    CREATE EXTENSION IF NOT EXISTS "citext";

    CREATE TABLE IF NOT EXISTS users (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      username TEXT NOT NULL UNIQUE,
      email CITEXT NOT NULL UNIQUE,
      password_hash TEXT NULL,
      role TEXT NOT NULL DEFAULT 'SUPPORTER'
        CHECK (role IN ('SUPPORTER','BUSINESS_REPRESENTATIVE','ADMIN','ROOT','PENDING_ROLE_SELECTION')),
      profile_picture TEXT NULL,
      auth_provider TEXT NOT NULL DEFAULT 'local',
      provider_subject TEXT NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    CREATE UNIQUE INDEX IF NOT EXISTS uq_users_provider_subject
      ON users(auth_provider, provider_subject) WHERE provider_subject IS NOT NULL;

    -- one shop per business representative
    CREATE TABLE IF NOT EXISTS shops (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      owner_user_id UUID NOT NULL UNIQUE REFERENCES users(id) ON DELETE CASCADE,
      name TEXT NOT NULL,
      description TEXT NULL,
      address TEXT NULL,
      status TEXT NOT NULL DEFAULT 'pending'
        CHECK (status IN ('pending','verified','rejected')),
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );

    CREATE TABLE IF NOT EXISTS campaigns (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      shop_id UUID NOT NULL REFERENCES shops(id) ON DELETE CASCADE,
      name TEXT NOT NULL,
      description TEXT NULL,
      story TEXT NULL,
      goal NUMERIC(12,2) NULL CHECK (goal IS NULL OR goal >= 0),
      amt_raised NUMERIC(12,2) NOT NULL DEFAULT 0,
      end_date DATE NULL,
      status TEXT NOT NULL DEFAULT 'draft'
        CHECK (status IN ('draft','pending','approved','rejected','suspended')),
      image_url TEXT NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    CREATE INDEX IF NOT EXISTS idx_campaigns_shop_id ON campaigns(shop_id);
    CREATE INDEX IF NOT EXISTS idx_campaigns_status ON campaigns(status);

    CREATE TABLE IF NOT EXISTS reward_tiers (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      campaign_id UUID NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
      amount NUMERIC(12,2) NOT NULL CHECK (amount > 0),
      title TEXT NOT NULL,
      description TEXT NULL,
      quantity_available INTEGER NULL CHECK (quantity_available IS NULL OR quantity_available >= 0),
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      deleted_at TIMESTAMPTZ NULL
    );
    CREATE INDEX IF NOT EXISTS idx_reward_tiers_campaign_id
      ON reward_tiers(campaign_id) WHERE deleted_at IS NULL;
    """
    )


def downgrade():
    op.execute(
        """
    DROP TABLE IF EXISTS reward_tiers;
    DROP TABLE IF EXISTS campaigns;
    DROP TABLE IF EXISTS shops;
    DROP TABLE IF EXISTS users;
    """
    )

from alembic import op

revision = "0003_campaign_updates_comments"
down_revision = "0002_donations_user_rewards"
branch_labels = None
depends_on = None


def upgrade():
    op.execute(
        """
    CREATE TABLE IF NOT EXISTS campaign_updates (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      campaign_id UUID NOT NULL REFERENCES campaigns(id) ON DELETE CASCADE,
      author_user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
      title TEXT NOT NULL,
      body TEXT NOT NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    CREATE INDEX IF NOT EXISTS idx_campaign_updates_campaign
      ON campaign_updates(campaign_id, created_at DESC);

    CREATE TABLE IF NOT EXISTS update_likes (
      update_id UUID NOT NULL REFERENCES campaign_updates(id) ON DELETE CASCADE,
      user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
      PRIMARY KEY (update_id, user_id)
    );

    CREATE TABLE IF NOT EXISTS update_comments (
      id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
      update_id UUID NOT NULL REFERENCES campaign_updates(id) ON DELETE CASCADE,
      user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
      parent_id UUID NULL REFERENCES update_comments(id) ON DELETE CASCADE,
      body TEXT NOT NULL,
      created_at TIMESTAMPTZ NOT NULL DEFAULT now()
    );
    CREATE INDEX IF NOT EXISTS idx_update_comments_update
      ON update_comments(update_id, created_at);
    """
    )


def downgrade():
    op.execute(
        """
    DROP TABLE IF EXISTS update_comments;
    DROP TABLE IF EXISTS update_likes;
    DROP TABLE IF EXISTS campaign_updates;
    """
    )

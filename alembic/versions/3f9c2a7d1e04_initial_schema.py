"""initial_schema

Revision ID: 3f9c2a7d1e04
Revises:
Create Date: 2026-09-28 10:14:32.118204

"""
from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '3f9c2a7d1e04'
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade schema."""
    op.execute("""
-- Enable UUID extension
CREATE EXTENSION IF NOT EXISTS "uuid-ossp";

-- Geography
CREATE TABLE IF NOT EXISTS counties (
    id SERIAL PRIMARY KEY,
    name VARCHAR(100) UNIQUE NOT NULL,
    code VARCHAR(10) UNIQUE
);

CREATE TABLE IF NOT EXISTS constituencies (
    id SERIAL PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    county_id INTEGER NOT NULL REFERENCES counties(id) ON DELETE CASCADE,
    UNIQUE (county_id, name)
);

CREATE TABLE IF NOT EXISTS wards (
    id SERIAL PRIMARY KEY,
    name VARCHAR(100) NOT NULL,
    constituency_id INTEGER NOT NULL REFERENCES constituencies(id) ON DELETE CASCADE,
    UNIQUE (constituency_id, name)
);

CREATE INDEX IF NOT EXISTS idx_constituencies_county ON constituencies(county_id);
CREATE INDEX IF NOT EXISTS idx_wards_constituency ON wards(constituency_id);

-- Political reference data
CREATE TABLE IF NOT EXISTS political_positions (
    id SERIAL PRIMARY KEY,
    name VARCHAR(100) UNIQUE NOT NULL,
    level VARCHAR(20) NOT NULL CHECK (level IN ('national', 'county', 'constituency', 'ward')),
    description TEXT
);

CREATE TABLE IF NOT EXISTS political_parties (
    id SERIAL PRIMARY KEY,
    name VARCHAR(255) UNIQUE NOT NULL,
    abbreviation VARCHAR(20),
    color VARCHAR(20)
);

-- Users
CREATE TABLE IF NOT EXISTS users (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    phone_number VARCHAR(20) UNIQUE NOT NULL,
    email VARCHAR(255),
    password_hash TEXT NOT NULL,
    full_name VARCHAR(255) NOT NULL,
    age_group VARCHAR(20),
    gender VARCHAR(20),
    role VARCHAR(20) NOT NULL DEFAULT 'voter' CHECK (role IN ('voter', 'admin', 'super_admin')),
    status VARCHAR(20) NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'suspended')),
    county_id INTEGER REFERENCES counties(id),
    constituency_id INTEGER REFERENCES constituencies(id),
    ward_id INTEGER REFERENCES wards(id),
    phone_verified BOOLEAN NOT NULL DEFAULT FALSE,
    email_verified BOOLEAN NOT NULL DEFAULT FALSE,
    registration_source VARCHAR(20) NOT NULL DEFAULT 'web',
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    last_login_at TIMESTAMP WITH TIME ZONE
);

CREATE UNIQUE INDEX IF NOT EXISTS idx_users_email_lower ON users(LOWER(email)) WHERE email IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_users_role ON users(role);

-- Candidates
CREATE TABLE IF NOT EXISTS candidates (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    name VARCHAR(255) NOT NULL,
    position_id INTEGER NOT NULL REFERENCES political_positions(id),
    party_id INTEGER REFERENCES political_parties(id),
    county_id INTEGER REFERENCES counties(id),
    constituency_id INTEGER REFERENCES constituencies(id),
    ward_id INTEGER REFERENCES wards(id),
    age INTEGER CHECK (age IS NULL OR age >= 18),
    gender VARCHAR(20),
    profession VARCHAR(255),
    education_level VARCHAR(100),
    phone_number VARCHAR(20),
    email VARCHAR(255),
    bio TEXT,
    campaign_slogan VARCHAR(500),
    campaign_color VARCHAR(20),
    manifesto_url VARCHAR(500),
    website_url VARCHAR(500),
    profile_image_url VARCHAR(500),
    verification_status VARCHAR(20) NOT NULL DEFAULT 'unverified'
        CHECK (verification_status IN ('unverified', 'pending', 'verified', 'rejected')),
    registration_status VARCHAR(20) NOT NULL DEFAULT 'pending'
        CHECK (registration_status IN ('pending', 'approved', 'rejected', 'withdrawn')),
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_candidates_position ON candidates(position_id);
CREATE INDEX IF NOT EXISTS idx_candidates_party ON candidates(party_id);

-- Polls
CREATE TABLE IF NOT EXISTS polls (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    title VARCHAR(255) NOT NULL,
    description TEXT,
    position_id INTEGER NOT NULL REFERENCES political_positions(id),
    county_id INTEGER REFERENCES counties(id),
    constituency_id INTEGER REFERENCES constituencies(id),
    ward_id INTEGER REFERENCES wards(id),
    start_date TIMESTAMP WITH TIME ZONE NOT NULL,
    end_date TIMESTAMP WITH TIME ZONE NOT NULL,
    poll_type VARCHAR(50) NOT NULL DEFAULT 'single_choice',
    allow_anonymous BOOLEAN NOT NULL DEFAULT FALSE,
    require_verification BOOLEAN NOT NULL DEFAULT TRUE,
    status VARCHAR(20) NOT NULL DEFAULT 'draft' CHECK (status IN ('draft', 'active', 'closed')),
    total_votes INTEGER NOT NULL DEFAULT 0,
    created_by UUID REFERENCES users(id) ON DELETE SET NULL,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT chk_polls_window CHECK (end_date > start_date)
);

CREATE INDEX IF NOT EXISTS idx_polls_status ON polls(status);
CREATE INDEX IF NOT EXISTS idx_polls_status_end_date ON polls(status, end_date);
CREATE INDEX IF NOT EXISTS idx_polls_position ON polls(position_id);

CREATE TABLE IF NOT EXISTS poll_candidates (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    poll_id UUID NOT NULL REFERENCES polls(id) ON DELETE CASCADE,
    candidate_id UUID NOT NULL REFERENCES candidates(id) ON DELETE CASCADE,
    display_order INTEGER NOT NULL DEFAULT 0,
    is_active BOOLEAN NOT NULL DEFAULT TRUE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT uq_poll_candidates_poll_candidate UNIQUE (poll_id, candidate_id)
);

CREATE INDEX IF NOT EXISTS idx_poll_candidates_candidate ON poll_candidates(candidate_id);

-- One vote per voter per poll
CREATE TABLE IF NOT EXISTS poll_responses (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    poll_id UUID NOT NULL REFERENCES polls(id) ON DELETE RESTRICT,
    user_id UUID NOT NULL REFERENCES users(id) ON DELETE RESTRICT,
    candidate_id UUID NOT NULL REFERENCES candidates(id) ON DELETE RESTRICT,
    response_method VARCHAR(20) NOT NULL DEFAULT 'web'
        CHECK (response_method IN ('web', 'sms', 'ussd')),
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT uq_poll_responses_poll_user UNIQUE (poll_id, user_id)
);

CREATE INDEX IF NOT EXISTS idx_poll_responses_poll_candidate ON poll_responses(poll_id, candidate_id);
CREATE INDEX IF NOT EXISTS idx_poll_responses_candidate ON poll_responses(candidate_id);

-- Issues
CREATE TABLE IF NOT EXISTS issue_categories (
    id SERIAL PRIMARY KEY,
    name VARCHAR(100) UNIQUE NOT NULL,
    icon VARCHAR(50),
    description TEXT
);

CREATE TABLE IF NOT EXISTS issues (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    user_id UUID REFERENCES users(id) ON DELETE SET NULL,
    title VARCHAR(255) NOT NULL,
    description TEXT NOT NULL,
    category_id INTEGER NOT NULL REFERENCES issue_categories(id),
    location_description VARCHAR(500),
    is_anonymous BOOLEAN NOT NULL DEFAULT FALSE,
    status VARCHAR(20) NOT NULL DEFAULT 'submitted'
        CHECK (status IN ('submitted', 'under review', 'in progress', 'resolved', 'rejected')),
    priority VARCHAR(10) NOT NULL DEFAULT 'medium'
        CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
    upvotes_count INTEGER NOT NULL DEFAULT 0,
    views_count INTEGER NOT NULL DEFAULT 0,
    comments_count INTEGER NOT NULL DEFAULT 0,
    admin_response TEXT,
    admin_response_by UUID REFERENCES users(id) ON DELETE SET NULL,
    admin_response_at TIMESTAMP WITH TIME ZONE,
    resolved_at TIMESTAMP WITH TIME ZONE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    updated_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_issues_status ON issues(status);
CREATE INDEX IF NOT EXISTS idx_issues_category ON issues(category_id);
CREATE INDEX IF NOT EXISTS idx_issues_created_at ON issues(created_at DESC);

CREATE TABLE IF NOT EXISTS issue_upvotes (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    issue_id UUID NOT NULL REFERENCES issues(id) ON DELETE CASCADE,
    user_id UUID NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP,
    CONSTRAINT uq_issue_upvotes_issue_user UNIQUE (issue_id, user_id)
);

CREATE TABLE IF NOT EXISTS issue_comments (
    id UUID PRIMARY KEY DEFAULT uuid_generate_v4(),
    issue_id UUID NOT NULL REFERENCES issues(id) ON DELETE CASCADE,
    user_id UUID REFERENCES users(id) ON DELETE SET NULL,
    comment_text TEXT NOT NULL,
    created_at TIMESTAMP WITH TIME ZONE DEFAULT CURRENT_TIMESTAMP
);

CREATE INDEX IF NOT EXISTS idx_issue_comments_issue ON issue_comments(issue_id, created_at DESC);

-- Flattened geography for registration forms
CREATE OR REPLACE VIEW v_geographic_hierarchy AS
SELECT
    c.id AS county_id,
    c.name AS county_name,
    cn.id AS constituency_id,
    cn.name AS constituency_name,
    w.id AS ward_id,
    w.name AS ward_name
FROM counties c
LEFT JOIN constituencies cn ON cn.county_id = c.id
LEFT JOIN wards w ON w.constituency_id = cn.id;
    """)


def downgrade() -> None:
    """Downgrade schema."""
    op.execute("""
    DROP VIEW IF EXISTS v_geographic_hierarchy;
    DROP TABLE IF EXISTS issue_comments CASCADE;
    DROP TABLE IF EXISTS issue_upvotes CASCADE;
    DROP TABLE IF EXISTS issues CASCADE;
    DROP TABLE IF EXISTS issue_categories CASCADE;
    DROP TABLE IF EXISTS poll_responses CASCADE;
    DROP TABLE IF EXISTS poll_candidates CASCADE;
    DROP TABLE IF EXISTS polls CASCADE;
    DROP TABLE IF EXISTS candidates CASCADE;
    DROP TABLE IF EXISTS users CASCADE;
    DROP TABLE IF EXISTS political_parties CASCADE;
    DROP TABLE IF EXISTS political_positions CASCADE;
    DROP TABLE IF EXISTS wards CASCADE;
    DROP TABLE IF EXISTS constituencies CASCADE;
    DROP TABLE IF EXISTS counties CASCADE;
    DROP EXTENSION IF EXISTS "uuid-ossp";
    """)

"""seed_reference_data

Revision ID: 8b51e6c0d2a9
Revises: 3f9c2a7d1e04
Create Date: 2026-09-28 10:41:07.552913

"""
from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = '8b51e6c0d2a9'
down_revision: str | Sequence[str] | None = '3f9c2a7d1e04'
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Seed counties, Nakuru constituencies and wards, positions, parties and issue categories."""
    op.execute("""
INSERT INTO counties (name, code) VALUES
    ('Mombasa', '001'),
    ('Kisumu', '042'),
    ('Nakuru', '032'),
    ('Kiambu', '022'),
    ('Nairobi', '047')
ON CONFLICT (name) DO NOTHING;

INSERT INTO constituencies (name, county_id)
SELECT v.name, c.id
FROM (VALUES
    ('Molo'), ('Njoro'), ('Naivasha'), ('Gilgil'), ('Kuresoi South'), ('Kuresoi North'),
    ('Subukia'), ('Rongai'), ('Bahati'), ('Nakuru Town West'), ('Nakuru Town East')
) AS v(name)
CROSS JOIN counties c
WHERE c.name = 'Nakuru'
ON CONFLICT (county_id, name) DO NOTHING;

INSERT INTO wards (name, constituency_id)
SELECT v.ward, cn.id
FROM (VALUES
    ('Nakuru Town East', 'Biashara'),
    ('Nakuru Town East', 'Kivumbini'),
    ('Nakuru Town East', 'Flamingo'),
    ('Nakuru Town East', 'Menengai'),
    ('Nakuru Town East', 'Nakuru East'),
    ('Nakuru Town West', 'Barut'),
    ('Nakuru Town West', 'London'),
    ('Nakuru Town West', 'Kaptembwo'),
    ('Nakuru Town West', 'Kapkures'),
    ('Nakuru Town West', 'Rhoda'),
    ('Nakuru Town West', 'Shaabab'),
    ('Naivasha', 'Biashara Naivasha'),
    ('Naivasha', 'Hells Gate'),
    ('Naivasha', 'Lake View'),
    ('Naivasha', 'Maai Mahiu'),
    ('Naivasha', 'Maiella'),
    ('Naivasha', 'Olkaria'),
    ('Naivasha', 'Naivasha East'),
    ('Naivasha', 'Viwandani'),
    ('Njoro', 'Mau Narok'),
    ('Njoro', 'Mauche'),
    ('Njoro', 'Kihingo'),
    ('Njoro', 'Nessuit'),
    ('Njoro', 'Lare'),
    ('Njoro', 'Njoro')
) AS v(constituency, ward)
JOIN constituencies cn ON cn.name = v.constituency
JOIN counties c ON cn.county_id = c.id AND c.name = 'Nakuru'
ON CONFLICT (constituency_id, name) DO NOTHING;

INSERT INTO political_positions (name, level, description) VALUES
    ('President', 'national', 'Head of State and Government'),
    ('Governor', 'county', 'County executive head'),
    ('Senator', 'county', 'County representative in the Senate'),
    ('Woman Representative', 'county', 'County Woman Member of the National Assembly'),
    ('Member of Parliament', 'constituency', 'Constituency representative in the National Assembly'),
    ('Member of County Assembly', 'ward', 'Ward representative in the County Assembly')
ON CONFLICT (name) DO NOTHING;

INSERT INTO political_parties (name, abbreviation, color) VALUES
    ('United Democratic Alliance', 'UDA', '#FFD700'),
    ('Orange Democratic Movement', 'ODM', '#FF6600'),
    ('Jubilee Party', 'JP', '#D32F2F'),
    ('Wiper Democratic Movement', 'WDM', '#1565C0'),
    ('Amani National Congress', 'ANC', '#2E7D32'),
    ('Independent', 'IND', '#757575')
ON CONFLICT (name) DO NOTHING;

INSERT INTO issue_categories (name, icon, description) VALUES
    ('Roads & Infrastructure', 'road', 'Roads, bridges, street lighting and drainage'),
    ('Water & Sanitation', 'water', 'Water supply, sewerage and waste collection'),
    ('Health', 'health', 'Hospitals, clinics and public health'),
    ('Education', 'school', 'Schools, bursaries and learning facilities'),
    ('Security', 'shield', 'Crime, policing and public safety'),
    ('Environment', 'leaf', 'Pollution, forests and green spaces'),
    ('Other', 'other', 'Anything that does not fit another category')
ON CONFLICT (name) DO NOTHING;
    """)


def downgrade() -> None:
    """Remove seeded reference rows."""
    op.execute("""
    DELETE FROM issue_categories;
    DELETE FROM political_parties;
    DELETE FROM political_positions;
    DELETE FROM wards;
    DELETE FROM constituencies;
    DELETE FROM counties;
    """)

"""Seed a handful of sample developer profiles for local development.

Every seeded account uses the password ``devmatch123``.
"""
import asyncio
import sys
sys.path.insert(0, ".")

from sqlalchemy import select
from app.database import async_session_factory, engine
from app.models.developer import Developer
from app.services.auth_service import hash_password


SAMPLE_PASSWORD = "devmatch123"

SAMPLE_DEVELOPERS = [
    {
        "name": "Ada Byte",
        "email": "ada@devmatch.dev",
        "skills": ["Python", "PostgreSQL", "Distributed systems"],
        "tech_stacks": ["FastAPI", "SQLAlchemy", "Redis"],
        "project_interests": ["Developer tooling", "Open source"],
        "experience": "8 years building backend platforms.",
        "github_link": "https://github.com/ada-byte",
    },
    {
        "name": "Linus Stack",
        "email": "linus@devmatch.dev",
        "skills": ["C", "Rust", "Linux"],
        "tech_stacks": ["Tokio", "systemd"],
        "project_interests": ["Embedded", "Performance tuning"],
        "experience": "Kernel hobbyist, day job in infrastructure.",
        "github_link": "https://github.com/linus-stack",
    },
    {
        "name": "Grace Loop",
        "email": "grace@devmatch.dev",
        "skills": ["TypeScript", "React", "GraphQL"],
        "tech_stacks": ["Next.js", "Node.js"],
        "project_interests": ["Design systems", "Accessibility"],
        "experience": "Frontend lead at two startups.",
        "github_link": "https://github.com/grace-loop",
    },
    {
        "name": "Alan Turing-Complete",
        "email": "alan@devmatch.dev",
        "skills": ["Python", "Machine learning", "Statistics"],
        "tech_stacks": ["PyTorch", "NumPy", "Jupyter"],
        "project_interests": ["Research tooling", "Education"],
        "experience": "Data scientist moving into ML engineering.",
        "github_link": "https://github.com/alan-tc",
    },
    {
        "name": "Margaret Deploy",
        "email": "margaret@devmatch.dev",
        "skills": ["Go", "Kubernetes", "Terraform"],
        "tech_stacks": ["Docker", "Prometheus", "Grafana"],
        "project_interests": ["SRE", "Cloud cost optimisation"],
        "experience": "Platform engineer, on-call veteran.",
        "github_link": "https://github.com/margaret-deploy",
    },
]


async def seed():
    async with async_session_factory() as session:
        for d in SAMPLE_DEVELOPERS:
            existing = await session.execute(
                select(Developer).where(Developer.email == d["email"])
            )
            if existing.scalar_one_or_none() is None:
                session.add(Developer(password_hash=hash_password(SAMPLE_PASSWORD), **d))
                print(f"  Seeded developer {d['name']} <{d['email']}>")
            else:
                print(f"  Developer {d['email']} already exists, skipping.")
        await session.commit()
    await engine.dispose()
    print("Done seeding developers.")


if __name__ == "__main__":
    asyncio.run(seed())

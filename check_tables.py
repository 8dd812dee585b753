from campushub.core.database import session_manager
from sqlalchemy import inspect
import asyncio


async def list_tables():
    # Initialize the session manager first (creates missing tables)
    await session_manager.init()

    async with session_manager.engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())
    print("✅ Tables in database:", tables)

    await session_manager.close()

asyncio.run(list_tables())

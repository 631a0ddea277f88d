from registratura.database.connection import get_connection


class NotificationRepository:
    """Database operations for the notifications table."""

    def insert(
        self,
        *,
        user_id: str,
        title: str,
        message: str,
        link: str,
        created_by: str,
        notification_type: str = "info",
        module: str = "registratura",
    ) -> None:
        with get_connection() as conn:
            conn.execute(
                """
                INSERT INTO notifications
                    (user_id, title, message, type, module, link, created_by)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
                """,
                (user_id, title, message, notification_type, module, link, created_by),
            )
            conn.commit()

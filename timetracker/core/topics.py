"""
Kafka Topic Definitions for the TimeTracker attendance service.

Topic naming follows the pattern: <domain>-<event-type>
"""


class KafkaTopics:
    """
    Central registry of all Kafka topics used by the service.
    """

    # Inbound - written by the clock-in flow
    ATTENDANCE_SESSION_CREATED = "attendance-session-created"

    # Outbound - conflict reconciliation
    ATTENDANCE_CONFLICT_DETECTED = "attendance-conflict-detected"

    # Outbound - reminder runs and admin notifications
    NOTIFICATION_RUN_COMPLETED = "notification-run-completed"
    NOTIFICATION_SENT = "notification-sent"

    # Outbound - summaries for dashboards and reporting
    ATTENDANCE_DAILY_SUMMARY = "attendance-daily-summary"

from unittest import mock

import requests
from django.test import TestCase, override_settings

from common.exceptions import NotFound
from common.fixtures import ChannelFixturesMixin
from common.policy import Actor
from notifications.api import NotificationListView, NotificationReadView
from notifications.models import Notification
from notifications.services import mark_read, notify, notify_many, stakeholders_for
from notifications.tasks import push_realtime_notification


class FanOutTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=0)

    def test_stakeholders(self):
        self.assertEqual(
            [u.id for u in stakeholders_for(self.marketer)],
            [self.marketer.id, self.admin.id, self.super_admin.id],
        )
        with_masters = stakeholders_for(self.marketer, include_master_admins=True)
        self.assertEqual(with_masters[-1].id, self.master.id)
        # an admin is their own first stakeholder and is not repeated
        self.assertEqual([u.id for u in stakeholders_for(self.admin)], [self.admin.id, self.super_admin.id])

    def test_one_failing_recipient_does_not_block_the_rest(self):
        real_notify = notify

        def flaky(recipient, *args, **kwargs):
            if recipient.pk == self.admin.pk:
                raise RuntimeError("boom")
            return real_notify(recipient, *args, **kwargs)

        with mock.patch("notifications.services.notify", side_effect=flaky):
            with self.assertLogs("notifications", level="ERROR"):
                delivered = notify_many(
                    [self.marketer, self.admin, self.super_admin, self.marketer], "hello", event_type="test"
                )

        self.assertEqual(len(delivered), 2)
        self.assertEqual(
            set(Notification.objects.values_list("recipient_id", flat=True)),
            {self.marketer.id, self.super_admin.id},
        )

    def test_push_only_queued_when_gateway_configured(self):
        with mock.patch("notifications.tasks.push_realtime_notification") as task:
            notify(self.marketer, "no gateway", push=True)
            task.delay.assert_not_called()

            with override_settings(REALTIME_PUSH_URL="https://push.example.com/events"):
                n = notify(self.marketer, "gateway", push=True)
            task.delay.assert_called_once_with(n.id)


@override_settings(REALTIME_PUSH_URL="https://push.example.com/events", REALTIME_PUSH_TIMEOUT=2)
class PushTaskTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=0)
        self.notification = Notification.objects.create(
            recipient=self.marketer, message="Order confirmed", event_type="order_confirmed"
        )

    @mock.patch("notifications.tasks.requests.post")
    def test_posts_payload(self, post):
        post.return_value.raise_for_status.return_value = None
        result = push_realtime_notification.apply(args=[self.notification.id]).get()

        self.assertTrue(result)
        url = post.call_args.args[0]
        payload = post.call_args.kwargs["json"]
        self.assertEqual(url, "https://push.example.com/events")
        self.assertEqual(post.call_args.kwargs["timeout"], 2)
        self.assertEqual(payload["recipient_unique_id"], "MK001")
        self.assertEqual(payload["event_type"], "order_confirmed")

    @mock.patch("notifications.tasks.requests.post")
    def test_gateway_failure_retries(self, post):
        post.side_effect = requests.exceptions.ConnectionError("refused")
        # called directly, retry re-raises the original error
        with self.assertLogs("notifications.tasks", level="WARNING"):
            with self.assertRaises(requests.exceptions.ConnectionError):
                push_realtime_notification.run(self.notification.id)
        post.assert_called_once()

    def test_missing_notification(self):
        self.assertFalse(push_realtime_notification.run(987654))


class ReadStateTests(ChannelFixturesMixin, TestCase):
    def setUp(self):
        self.build_network(units=0)
        self.first = notify(self.marketer, "one")
        self.second = notify(self.marketer, "two")
        notify(self.marketer_b, "not yours")

    def test_mark_read(self):
        n = mark_read(Actor(self.marketer), self.first.id)
        self.assertTrue(n.is_read)
        self.assertIsNotNone(n.read_at)
        read_at = n.read_at
        self.assertEqual(mark_read(Actor(self.marketer), self.first.id).read_at, read_at)

    def test_cannot_read_someone_elses(self):
        with self.assertRaises(NotFound):
            mark_read(Actor(self.marketer_b), self.first.id)

    def test_api(self):
        res = self.api(NotificationListView, "GET", "/api/v1/notifications/", self.marketer)
        self.assertEqual(res.data["count"], 2)
        self.assertEqual(res.data["unread"], 2)

        res = self.api(NotificationReadView, "POST", "/", self.marketer, pk=self.second.id)
        self.assertEqual(res.status_code, 200)

        res = self.api(NotificationListView, "GET", "/api/v1/notifications/", self.marketer, {"unread": "1"})
        self.assertEqual(res.data["count"], 1)
        self.assertEqual(res.data["results"][0]["id"], self.first.id)

        res = self.api(NotificationReadView, "POST", "/", self.marketer_b, pk=self.second.id)
        self.assertEqual(res.status_code, 404)
